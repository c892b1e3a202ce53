from typing import Dict, Iterable, List

from schemas import CostBreakdownItem, CostOut, CostSummary

TOP_SERVICES = 3


def breakdown_key(cost: CostOut) -> str:
    return f"{cost.service} ({cost.model})" if cost.model else cost.service


def summarize_costs(costs: Iterable[CostOut], top: int = TOP_SERVICES) -> CostSummary:
    costs = list(costs)
    total_cost = sum(c.cost_usd for c in costs)
    tokens_in = sum(c.tokens_input for c in costs)
    tokens_out = sum(c.tokens_output for c in costs)

    groups: Dict[str, CostBreakdownItem] = {}
    for c in costs:
        key = breakdown_key(c)
        item = groups.get(key)
        if item is None:
            item = groups[key] = CostBreakdownItem(key=key, cost_usd=0.0, tokens=0, operations=0)
        item.cost_usd += c.cost_usd
        item.tokens += c.tokens_input + c.tokens_output
        item.operations += 1

    # sorted() is stable, so equal-cost groups keep first-seen order
    ranked: List[CostBreakdownItem] = sorted(groups.values(), key=lambda i: i.cost_usd, reverse=True)
    return CostSummary(
        total_cost_usd=total_cost,
        total_tokens_input=tokens_in,
        total_tokens_output=tokens_out,
        total_tokens=tokens_in + tokens_out,
        operations=len(costs),
        breakdown=ranked[:top],
        remaining_operations=max(len(costs) - top, 0),
    )


def format_cost(cost: float) -> str:
    if cost == 0:
        return "$0.00"
    if cost < 0.01:
        return f"${cost:.4f}"
    return f"${cost:.2f}"


def format_tokens(tokens: int) -> str:
    if tokens >= 1_000_000:
        return f"{tokens / 1_000_000:.1f}M"
    if tokens >= 1_000:
        return f"{tokens / 1_000:.1f}K"
    return str(tokens)
