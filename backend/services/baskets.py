# backend/services/baskets.py
"""Read-side grouping of exit requests into baskets.

A basket is every request from one requester whose ``requested_at`` falls in
the same minute. Nothing here touches the database; baskets are recomputed
from the request rows on each read.
"""
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Tuple

from utils.dates import truncate_to_minute

MIXED = "mixed"


def basket_key(request) -> Tuple[int, datetime]:
    return request.requested_by, truncate_to_minute(request.requested_at)


def aggregate_status(statuses: Iterable[str]) -> str:
    distinct = set(statuses)
    if len(distinct) == 1:
        only = distinct.pop()
        if only in ("pending", "approved", "rejected"):
            return only
    return MIXED


@dataclass(frozen=True)
class Basket:
    requested_by: int
    requested_by_name: str
    minute: datetime
    requests: Tuple = ()

    @property
    def status(self) -> str:
        return aggregate_status(r.status for r in self.requests)

    @property
    def total_quantity(self) -> int:
        return sum(r.quantity for r in self.requests)

    @property
    def pending_requests(self) -> List:
        return [r for r in self.requests if r.status == "pending"]


def group_into_baskets(requests: Iterable) -> List[Basket]:
    """Group requests by (requester, minute); newest basket first."""
    members = defaultdict(list)
    for req in requests:
        members[basket_key(req)].append(req)

    baskets = []
    for (requested_by, minute), reqs in members.items():
        reqs.sort(key=lambda r: (r.requested_at, r.id or 0))
        baskets.append(Basket(
            requested_by=requested_by,
            requested_by_name=reqs[0].requested_by_name,
            minute=minute,
            requests=tuple(reqs),
        ))
    return sorted(baskets, key=lambda b: (b.minute, b.requested_by), reverse=True)
