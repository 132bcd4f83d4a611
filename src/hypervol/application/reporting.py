from __future__ import annotations
from typing import Mapping, Sequence

from ..domain.aggregation import AggregateState
from ..domain.models import WatchedAddress


def render_report(state: AggregateState, watched: Sequence[WatchedAddress]) -> list[str]:
    """Token lines first, then native; missing entries print as 0."""
    lines = [f"ERC20 transfer volume for address {w.raw} is {state.token.total(w.raw)}" for w in watched]
    lines += [f"WEI transfer volume for address {w.raw} is {state.native.total(w.raw)}" for w in watched]
    return lines


def render_failures(counts: Mapping[str, int]) -> list[str]:
    return [f"{kind}: {n} log(s) skipped" for kind, n in sorted(counts.items()) if n]
