from __future__ import annotations

import logging
from typing import Dict, List

import pandas as pd

from core.columns import (
    ENTITY_NAME_CANDIDATES,
    MEMBERSHIP_CATEGORY_CANDIDATES,
    MEMBERSHIP_ENTITY_CANDIDATES,
    resolve_column,
    resolve_impressions_column,
)
from core.models import Entity, EntityIndex
from core.normalize import coerce_str_safe, normalize_key, numericize
from core.tables import TableData

logger = logging.getLogger(__name__)

TOP_N_ENTITIES = 25


def authoritative_frame(table: TableData) -> pd.DataFrame:
    """Advertiser name + impressions, one row per normalized key (later rows win)."""
    name_col = resolve_column(table.columns, ENTITY_NAME_CANDIDATES, table=table.name)
    imp_col = resolve_impressions_column(table.columns, table=table.name)
    df = table.to_frame()[[name_col, imp_col]].copy()
    df.columns = ["advertiser", "impressions"]
    df = coerce_str_safe(df, ["advertiser"])
    df = numericize(df, ["impressions"])
    df = df.dropna(subset=["advertiser", "impressions"])
    df["key"] = df["advertiser"].map(normalize_key).astype(object)
    df = df[df["key"] != ""]
    df = df.drop_duplicates(subset=["key"], keep="last")
    df.attrs["columns"] = {"advertiser": name_col, "impressions": imp_col}
    return df


def membership_frame(table: TableData) -> pd.DataFrame:
    adv_col = resolve_column(table.columns, MEMBERSHIP_ENTITY_CANDIDATES, table=table.name)
    vert_col = resolve_column(table.columns, MEMBERSHIP_CATEGORY_CANDIDATES, table=table.name)
    df = table.to_frame()[[adv_col, vert_col]].copy()
    df.columns = ["member", "vertical"]
    df = coerce_str_safe(df, ["member", "vertical"])
    df = df.dropna(subset=["member", "vertical"]).reset_index(drop=True)
    df["key"] = df["member"].map(normalize_key).astype(object)
    df["_row"] = range(len(df))
    df.attrs["columns"] = {"member": adv_col, "vertical": vert_col}
    return df


def build_entity_index(authoritative: TableData, membership: TableData, *, top_n: int = TOP_N_ENTITIES) -> EntityIndex:
    """Group authoritative advertisers under the verticals the membership table assigns.

    Membership rows whose advertiser is absent from the authoritative table
    are dropped without error. Verticals are grouped by normalized name; within
    a vertical, duplicate keys collapse to the last row seen and the list is
    ranked by impressions and cut to ``top_n``.
    """
    auth = authoritative_frame(authoritative)
    members = membership_frame(membership)
    columns = {**auth.attrs.get("columns", {}), **members.attrs.get("columns", {})}

    matched = members.merge(auth[["key", "advertiser", "impressions"]], on="key", how="inner")
    unmatched = members.loc[~members["key"].isin(set(auth["key"])), "member"].astype(str).tolist()
    if unmatched:
        logger.info("%d membership rows had no advertiser match", len(unmatched))

    by_category: Dict[str, List[Entity]] = {}
    if matched.empty:
        return EntityIndex(by_category=by_category, unmatched=tuple(unmatched), columns=columns)

    matched = matched.sort_values("_row", kind="mergesort")
    vkey = matched["vertical"].map(normalize_key).astype(object)
    matched["vkey"] = vkey.where(vkey != "", matched["vertical"])
    labels = matched.groupby("vkey", sort=False)["vertical"].first()
    matched["_first"] = matched.groupby(["vkey", "key"])["_row"].transform("min")
    matched = matched.drop_duplicates(subset=["vkey", "key"], keep="last")

    # Spellings of one vertical share a group, listed under the first spelling seen.
    order = matched.groupby("vkey")["_first"].min().sort_values(kind="mergesort").index
    groups = dict(tuple(matched.groupby("vkey", sort=False)))
    for key in order:
        group = groups[key].sort_values(["impressions", "_first"], ascending=[False, True], kind="mergesort").head(top_n)
        by_category[str(labels[key])] = [
            Entity(name=str(r.advertiser), impressions=float(r.impressions)) for r in group.itertuples(index=False)
        ]

    return EntityIndex(by_category=by_category, unmatched=tuple(unmatched), columns=columns)
