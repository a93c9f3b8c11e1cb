from __future__ import annotations

from pathlib import Path

import pytest

from core.tables import TableData


@pytest.fixture
def categories_table() -> TableData:
    return TableData.from_records(
        [
            {"Vertical": "Auto", "% Change": "0.10"},
            {"Vertical": "Retail", "% Change": "-0.30"},
            {"Vertical": "Food & Beverage", "% Change": "0.05"},
            {"Vertical": "Overall", "% Change": "0.02"},
        ],
        name="vertical_pct_change.csv",
    )


@pytest.fixture
def advertisers_table() -> TableData:
    return TableData.from_records(
        [
            {"advertiser_name": "Acme Inc.", "impressions_2h_2025": "5000000", "reach": "100000", "frequency": "2.5"},
            {"advertiser_name": "Zoom Motors LLC", "impressions_2h_2025": "9000000", "reach": "300000", "frequency": "3.0"},
            {"advertiser_name": "Burger Barn", "impressions_2h_2025": "2000000", "reach": "80000", "frequency": "1.5"},
            {"advertiser_name": "ShopCo Holdings", "impressions_2h_2025": "7000000", "reach": "", "frequency": "4.0"},
        ],
        name="advertiser25.csv",
    )


@pytest.fixture
def membership_table() -> TableData:
    return TableData.from_records(
        [
            {"advertiser": "ACME, INC", "vertical": "Auto"},
            {"advertiser": "Zoom Motors", "vertical": "Auto"},
            {"advertiser": "Ghost Corp", "vertical": "Auto"},
            {"advertiser": "burger barn", "vertical": "Food & Beverage"},
            {"advertiser": "ShopCo", "vertical": "Retail"},
        ],
        name="adv_verticals.csv",
    )


@pytest.fixture
def prior_table() -> TableData:
    return TableData.from_records(
        [
            {"advertiser_name": "Acme", "impressions": "4000000", "reach": "80000", "frequency": "2.0"},
            {"advertiser_name": "Zoom Motors", "impressions": "0", "reach": "250000", "frequency": "3.0"},
        ],
        name="advertiser24.csv",
    )


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    (tmp_path / "vertical_pct_change.csv").write_text(
        "vertical,pct_change\nAuto,12.5\nRetail,-30\nFood & Beverage,5\nTotal,2\n", encoding="utf-8"
    )
    (tmp_path / "advertiser25.csv").write_text(
        "advertiser_name,impressions,reach,frequency\n"
        "Acme Inc.,5000000,100000,2.5\n"
        "Zoom Motors LLC,9000000,300000,3.0\n"
        "Burger Barn,2000000,80000,1.5\n",
        encoding="utf-8",
    )
    (tmp_path / "adv_verticals.csv").write_text(
        "advertiser,vertical\nAcme,Auto\nZoom Motors,Auto\nBurger Barn,Food & Beverage\nGhost Corp,Retail\n",
        encoding="utf-8",
    )
    (tmp_path / "advertiser24.csv").write_text(
        "advertiser_name,impressions,reach,frequency\nACME INC,4000000,80000,2.0\n", encoding="utf-8"
    )
    return tmp_path
