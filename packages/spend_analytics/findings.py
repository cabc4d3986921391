"""Rule-based spend-opportunity findings.

:func:`analyze_spend_opportunities` scans a record collection and returns
:class:`Finding` objects sorted by estimated savings (descending). They are the
structured input handed to the AI advisor and are useful on their own in the
CLI. Only actual spend (budget type ``Actual`` or blank) is analysed, except
for the untapped-savings rule which looks at every row of a category to find
recorded savings initiatives.

Rules
-----
- ``supplier_consolidation``: ≥ 5 suppliers in a category and the top three
  cover less than 65% of its spend.
- ``price_variance``: the same SKU bought at prices more than 15% apart with
  over €2,000 spend.
- ``tail_spend``: at least three suppliers each under €5,000 across at most
  five lines.
- ``volume_bundling``: the same SKU ordered three or more times in one month
  for over €1,000.
- ``untapped_savings``: ≥ €50,000 actual spend in a category with no price,
  volume or insourcing impact recorded.
- ``single_source``: ≥ €20,000 actual spend in a category from one supplier.
"""

from __future__ import annotations

import math
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel, ConfigDict

from .filters import is_actual
from .records import CATEGORIES, CanonicalRecord

type Priority = Literal["high", "medium", "low"]
type FindingType = Literal[
    "supplier_consolidation",
    "price_variance",
    "tail_spend",
    "volume_bundling",
    "untapped_savings",
    "single_source",
]


class Finding(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: FindingType
    priority: Priority
    category: str
    title: str
    detail: str
    affected: tuple[str, ...] = ()
    estimated_savings: int
    action: str


def _round(value: float) -> int:
    # Half-up rounding, so 0.5 → 1 rather than banker's rounding
    return math.floor(value + 0.5)


def _k_eur(value: float) -> str:
    return f"€{_round(value / 1000)}k"


def _short(category: str) -> str:
    return category.split(",")[0]


def _by_category(records: Sequence[CanonicalRecord]) -> dict[str, list[CanonicalRecord]]:
    grouped: dict[str, list[CanonicalRecord]] = defaultdict(list)
    for r in records:
        grouped[r.cost_category].append(r)
    return grouped


def _supplier_consolidation(actual: Sequence[CanonicalRecord]) -> list[Finding]:
    out: list[Finding] = []
    grouped = _by_category(actual)
    for cat in CATEGORIES:
        rows = grouped.get(cat)
        if not rows:
            continue
        cat_spend = sum(r.total_amount_usd for r in rows)
        per_supplier: dict[str, float] = defaultdict(float)
        for r in rows:
            per_supplier[r.supplier or "Unknown"] += r.total_amount_usd
        suppliers = sorted(per_supplier.items(), key=lambda kv: kv[1], reverse=True)
        if len(suppliers) < 5 or cat_spend == 0:
            continue
        top3_share = sum(v for _, v in suppliers[:3]) / cat_spend
        if top3_share >= 0.65:
            continue
        out.append(
            Finding(
                type="supplier_consolidation",
                priority="high" if cat_spend > 50000 else "medium",
                category=cat,
                title="Supplier Consolidation",
                detail=(
                    f"{len(suppliers)} suppliers in {_short(cat)}: top 3 cover only "
                    f"{_round(top3_share * 100)}% of spend ({_k_eur(cat_spend)}). "
                    "Fragmented buying reduces negotiating leverage."
                ),
                affected=tuple(name for name, _ in suppliers[:4]),
                estimated_savings=_round(cat_spend * 0.07),
                action=(
                    "Issue an RFQ to consolidate to 2-3 preferred suppliers with volume "
                    "commitments."
                ),
            )
        )
    return out


@dataclass(slots=True)
class _SkuPrices:
    description: str
    category: str
    prices: list[float] = field(default_factory=list)
    quantity: float = 0.0
    spend: float = 0.0


def _price_variance(actual: Sequence[CanonicalRecord]) -> list[Finding]:
    per_sku: dict[str, _SkuPrices] = {}
    for r in actual:
        if not r.sku or not r.unit_price_usd:
            continue
        entry = per_sku.setdefault(r.sku, _SkuPrices(r.item_description, r.cost_category))
        entry.prices.append(r.unit_price_usd)
        entry.quantity += r.quantity
        entry.spend += r.total_amount_usd

    hits: list[tuple[str, _SkuPrices, float, int]] = []
    for sku, d in per_sku.items():
        if len(d.prices) < 2:
            continue
        low, high = min(d.prices), max(d.prices)
        if low <= 0:
            continue
        variance = (high - low) / low
        if variance <= 0.15 or d.spend <= 2000:
            continue
        avg = sum(d.prices) / len(d.prices)
        savings = _round((avg - low) * d.quantity * 0.5)
        if savings > 200:
            hits.append((sku, d, variance, savings))
    if not hits:
        return []

    hits.sort(key=lambda h: h[3], reverse=True)
    top = hits[:5]
    total = sum(h[3] for h in top)
    sku, d, variance, _ = top[0]
    return [
        Finding(
            type="price_variance",
            priority="high" if total > 10000 else "medium",
            category=d.category,
            title="Price Variance Detected",
            detail=(
                f"{len(top)} SKU(s) purchased at significantly different prices across POs. "
                f"Top offender: {(d.description or sku)[:50]}, "
                f"{_round(variance * 100)}% price spread."
            ),
            affected=tuple(h[0] for h in top),
            estimated_savings=total,
            action=(
                "Standardize pricing via blanket POs or catalogue agreements. "
                "Enforce approved price list."
            ),
        )
    ]


def _tail_spend(actual: Sequence[CanonicalRecord]) -> list[Finding]:
    spend: dict[str, float] = defaultdict(float)
    count: dict[str, int] = defaultdict(int)
    for r in actual:
        name = r.supplier or "Unknown"
        spend[name] += r.total_amount_usd
        count[name] += 1
    tail = [name for name in spend if spend[name] < 5000 and count[name] <= 5]
    if len(tail) < 3:
        return []
    tail_spend = sum(spend[name] for name in tail)
    return [
        Finding(
            type="tail_spend",
            priority="medium" if len(tail) > 10 else "low",
            category="All Categories",
            title="Tail Spend Cleanup",
            detail=(
                f"{len(tail)} suppliers each account for less than €5k in total spend "
                f"(combined {_k_eur(tail_spend)}). Tail spend increases admin cost and "
                "reduces leverage."
            ),
            affected=tuple(tail[:5]),
            estimated_savings=_round(tail_spend * 0.05),
            action=(
                "Consolidate tail suppliers into preferred vendors or a marketplace. "
                "Target <20 active suppliers per category."
            ),
        )
    ]


@dataclass(slots=True)
class _SkuMonth:
    sku: str
    description: str
    count: int = 0
    spend: float = 0.0


def _volume_bundling(actual: Sequence[CanonicalRecord]) -> list[Finding]:
    orders: dict[str, _SkuMonth] = {}
    for r in actual:
        key = f"{r.sku}|{r.date[:7]}"
        entry = orders.setdefault(key, _SkuMonth(r.sku, r.item_description))
        entry.count += 1
        entry.spend += r.total_amount_usd
    hits = sorted(
        (d for d in orders.values() if d.count >= 3 and d.spend > 1000),
        key=lambda d: d.spend,
        reverse=True,
    )
    if not hits:
        return []
    total = sum(d.spend for d in hits)
    top = hits[0]
    return [
        Finding(
            type="volume_bundling",
            priority="medium" if total > 30000 else "low",
            category="Multiple",
            title="Volume Bundling Opportunity",
            detail=(
                f"{len(hits)} SKU(s) are ordered 3+ times per month in separate POs. "
                f"Top case: {(top.description or top.sku)[:45]} ({top.count} orders/month)."
            ),
            affected=tuple(d.sku for d in hits[:4] if d.sku),
            estimated_savings=_round(total * 0.03),
            action=(
                "Consolidate repeat orders into monthly blanket POs. Reduces processing "
                "cost and enables volume discounts."
            ),
        )
    ]


def _has_savings(record: CanonicalRecord) -> bool:
    return bool(
        record.price_impact_usd or record.volume_impact_usd or record.insourcing_savings_usd
    )


def _untapped_savings(records: Sequence[CanonicalRecord]) -> list[Finding]:
    out: list[Finding] = []
    grouped = _by_category(records)
    for cat in CATEGORIES:
        rows = grouped.get(cat)
        if not rows:
            continue
        actual_spend = sum(r.total_amount_usd for r in rows if is_actual(r))
        if actual_spend < 50000 or any(_has_savings(r) for r in rows):
            continue
        out.append(
            Finding(
                type="untapped_savings",
                priority="high" if actual_spend > 100000 else "medium",
                category=cat,
                title="No Savings Initiatives",
                detail=(
                    f"{_short(cat)} has {_k_eur(actual_spend)} in spend but zero recorded "
                    "savings initiatives. Industry benchmark is 3-7% savings annually."
                ),
                estimated_savings=_round(actual_spend * 0.05),
                action=(
                    "Launch a sourcing initiative: market benchmarking, RFQ, or demand "
                    "management review."
                ),
            )
        )
    return out


def _single_source(actual: Sequence[CanonicalRecord]) -> list[Finding]:
    out: list[Finding] = []
    grouped = _by_category(actual)
    for cat in CATEGORIES:
        rows = grouped.get(cat)
        if not rows:
            continue
        cat_spend = sum(r.total_amount_usd for r in rows)
        if cat_spend < 20000:
            continue
        suppliers = {r.supplier for r in rows if r.supplier}
        if len(suppliers) != 1:
            continue
        (name,) = suppliers
        out.append(
            Finding(
                type="single_source",
                priority="high" if cat_spend > 80000 else "medium",
                category=cat,
                title="Single-Source Risk",
                detail=(
                    f"{_short(cat)} is 100% sourced from {name} ({_k_eur(cat_spend)}). "
                    "No competitive leverage or supply continuity fallback."
                ),
                affected=(name,),
                estimated_savings=_round(cat_spend * 0.08),
                action=(
                    "Qualify a second supplier and run a competitive RFQ. Even a 20% split "
                    "creates leverage for pricing negotiations."
                ),
            )
        )
    return out


def analyze_spend_opportunities(records: Sequence[CanonicalRecord]) -> list[Finding]:
    """Return all findings for ``records``, highest estimated savings first."""

    actual = [r for r in records if is_actual(r)]
    findings: list[Finding] = []
    findings.extend(_supplier_consolidation(actual))
    findings.extend(_price_variance(actual))
    findings.extend(_tail_spend(actual))
    findings.extend(_volume_bundling(actual))
    findings.extend(_untapped_savings(records))
    findings.extend(_single_source(actual))
    # Stable sort keeps rule order among equal savings
    findings.sort(key=lambda f: f.estimated_savings, reverse=True)
    return findings


__all__ = ["Priority", "FindingType", "Finding", "analyze_spend_opportunities"]
