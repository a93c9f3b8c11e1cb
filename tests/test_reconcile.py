from __future__ import annotations

import pytest

import core.data as data
from core.data import build_category_table, build_detail_index, load_dataset, reconcile
from core.errors import ColumnNotFound, EmptyDataset
from core.tables import TableData, read_table


def _categories(rows):
    return TableData.from_records([{"vertical": n, "pct_change": v} for n, v in rows], name="verticals.csv")


def test_overall_row_is_baseline_not_a_category() -> None:
    table = build_category_table(_categories([("A", "10"), ("B", "-30"), ("C", "5"), ("Overall", "2")]))

    assert [c.name for c in table.categories] == ["A", "C", "B"]
    assert table.overall_pct_change == 2.0
    assert table.overall_from_sentinel
    assert table.top_positive == ["A", "C"]
    assert table.top_negative == ["B"]


def test_baseline_defaults_to_mean_without_sentinel() -> None:
    table = build_category_table(_categories([("A", "10"), ("B", "-30"), ("C", "5")]))
    assert table.overall_pct_change == pytest.approx(-5.0)
    assert not table.overall_from_sentinel


def test_proportions_are_scaled_including_the_baseline(categories_table) -> None:
    table = build_category_table(categories_table)

    assert [c.name for c in table.categories] == ["Auto", "Food & Beverage", "Retail"]
    assert [c.pct_change for c in table.categories] == pytest.approx([10.0, 5.0, -30.0])
    assert table.overall_pct_change == pytest.approx(2.0)
    assert table.columns == {"vertical": "Vertical", "pct_change": "% Change"}


def test_negatives_rank_by_magnitude_and_zero_is_neither() -> None:
    table = build_category_table(_categories([("A", "-5"), ("B", "-40"), ("C", "0"), ("D", "-12")]))
    assert [c.name for c in table.negatives] == ["B", "D", "A"]
    assert table.positives == ()
    assert table.top_negative == ["B", "D"]


def test_unparseable_rows_are_dropped_and_counted() -> None:
    table = build_category_table(_categories([("A", "10"), ("B", "n/a"), ("", "4"), ("C", "3")]))
    assert [c.name for c in table.categories] == ["A", "C"]
    assert table.dropped_rows == 2


def test_duplicate_verticals_keep_the_last_row() -> None:
    table = build_category_table(_categories([("Food & Drink", "10"), ("food and drink", "-4"), ("B", "3")]))
    assert [(c.name, c.pct_change) for c in table.categories] == [("B", 3.0), ("food and drink", -4.0)]


def test_empty_or_unusable_categories_table_is_fatal() -> None:
    with pytest.raises(EmptyDataset):
        build_category_table(TableData(columns=["vertical", "pct_change"], rows=[]))
    with pytest.raises(EmptyDataset):
        build_category_table(_categories([("A", "x"), ("B", "")]))
    with pytest.raises(EmptyDataset):
        build_category_table(_categories([("Total", "3")]))


def test_missing_change_column_is_fatal() -> None:
    table = TableData.from_records([{"vertical": "A", "delta": "3"}])
    with pytest.raises(ColumnNotFound):
        build_category_table(table)


def test_detail_index_joins_periods_on_normalized_name(advertisers_table, prior_table) -> None:
    result = build_detail_index(advertisers_table, prior_table)

    assert result.ok
    acme = result.get("ACME, Inc.")
    assert acme.name == "Acme Inc."
    assert (acme.impressions_a, acme.impressions_b) == (4_000_000.0, 5_000_000.0)
    assert (acme.reach_a, acme.reach_b) == (80_000.0, 100_000.0)

    burger = result.get("Burger Barn")
    assert burger.impressions_a is None and burger.reach_a is None and burger.frequency_a is None
    assert burger.impressions_b == 2_000_000.0

    assert result.get("ShopCo").reach_b is None


def test_detail_index_degrades_to_empty_on_failure(advertisers_table) -> None:
    broken_prior = TableData.from_records([{"advertiser_name": "Acme", "impressions": "1"}], name="advertiser24.csv")

    result = build_detail_index(advertisers_table, broken_prior)
    assert not result.ok
    assert result.details == {}
    assert "reach" in result.failure

    missing = build_detail_index(advertisers_table, None)
    assert not missing.ok and missing.details == {}


def test_reconcile_builds_all_three_structures(categories_table, advertisers_table, membership_table, prior_table) -> None:
    dataset = reconcile(categories_table, advertisers_table, membership_table, prior_table)

    assert dataset.category_at(0).name == "Auto"
    assert [e.name for e in dataset.entities_at(0)] == ["Zoom Motors LLC", "Acme Inc."]
    assert [e.name for e in dataset.entities_at(1)] == ["Burger Barn"]
    assert dataset.details.ok
    assert dataset.category_at(99) is None


def test_reconcile_requires_mandatory_advertiser_tables(categories_table, advertisers_table) -> None:
    empty = TableData(columns=["advertiser", "vertical"], rows=[], name="adv_verticals.csv")
    with pytest.raises(EmptyDataset, match="adv_verticals.csv"):
        reconcile(categories_table, advertisers_table, empty)


def test_load_dataset_reads_csv_exports(data_dir) -> None:
    dataset = load_dataset(data_dir)

    assert [c.name for c in dataset.categories.categories] == ["Auto", "Food & Beverage", "Retail"]
    assert dataset.categories.overall_pct_change == 2.0
    assert [e.name for e in dataset.entities.entities_for("Auto")] == ["Zoom Motors LLC", "Acme Inc."]
    assert dataset.entities.unmatched == ("Ghost Corp",)
    assert dataset.details.get("Acme").impressions_a == 4_000_000.0
    assert load_dataset(data_dir) is dataset


def test_load_dataset_without_prior_file_still_loads(data_dir) -> None:
    (data_dir / data.PRIOR_ENTITIES_FILE).unlink()
    dataset = load_dataset(data_dir)
    assert not dataset.details.ok
    assert dataset.entities.entities_for("Auto")


def test_load_dataset_missing_mandatory_file(data_dir, monkeypatch) -> None:
    (data_dir / data.MEMBERSHIP_FILE).unlink()
    with pytest.raises(EmptyDataset, match="adv_verticals.csv"):
        load_dataset(data_dir)

    monkeypatch.setattr(data, "DATA_DIR", data_dir / "nowhere")
    with pytest.raises(EmptyDataset):
        load_dataset()


@pytest.mark.parametrize("content", ["", "\n\n"])
def test_blank_mandatory_file_is_an_empty_dataset(data_dir, content) -> None:
    (data_dir / data.CATEGORIES_FILE).write_text(content, encoding="utf-8")
    with pytest.raises(EmptyDataset, match=data.CATEGORIES_FILE):
        load_dataset(data_dir)


def test_header_only_membership_file_is_an_empty_dataset(data_dir) -> None:
    (data_dir / data.MEMBERSHIP_FILE).write_text("advertiser,vertical\n", encoding="utf-8")
    with pytest.raises(EmptyDataset, match=data.MEMBERSHIP_FILE):
        load_dataset(data_dir)


def test_blank_prior_file_only_disables_detail(data_dir) -> None:
    (data_dir / data.PRIOR_ENTITIES_FILE).write_text("", encoding="utf-8")
    dataset = load_dataset(data_dir)
    assert not dataset.details.ok
    assert dataset.details.failure == "advertiser24.csv has no rows"
    assert dataset.entities.entities_for("Auto")


def test_read_table_of_zero_byte_file_is_empty(tmp_path) -> None:
    path = tmp_path / "blank.csv"
    path.write_text("", encoding="utf-8")
    table = read_table(path)
    assert table.empty and table.columns == [] and table.name == "blank.csv"


def test_absent_or_empty_prior_period_is_reported_not_raised(advertisers_table) -> None:
    missing = build_detail_index(advertisers_table, None)
    assert missing.failure == "prior-period advertiser table is not available"

    empty_prior = TableData(columns=["advertiser_name"], rows=[], name="advertiser24.csv")
    result = build_detail_index(advertisers_table, empty_prior)
    assert result.details == {}
    assert result.failure == "advertiser24.csv has no rows"
