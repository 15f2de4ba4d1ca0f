"""
Conditional Access Policy Collector
Fetches every CA policy from Graph and turns each into a Policy snapshot.
"""

from __future__ import annotations

import logging
import time

from ..config import CA_POLICIES_ENDPOINT
from ..graph.client import GraphClient, RemoteUnavailable
from ..models import Policy

logger = logging.getLogger("ca_policy_audit.collectors.conditional_access")


class ConditionalAccessCollector:
    """
    Reads ``identity/conditionalAccess/policies`` through a Graph session.
    All pages are drained before returning; any failure aborts the fetch.
    """

    name = "conditional_access"
    description = "Conditional Access policies"

    def __init__(self, endpoint: str = CA_POLICIES_ENDPOINT):
        self.endpoint = endpoint

    async def fetch_all(self, session: GraphClient) -> list[Policy]:
        """
        Return every policy in fetch order.

        Raises:
            AuthExpired: the session is not authenticated.
            RemoteUnavailable: Graph failed to serve any page, or returned
                a policy that cannot be read.
        """
        started = time.monotonic()
        logger.info(f"[{self.name}] Fetching policies...")

        items = await session.get_all_pages(self.endpoint)

        policies: list[Policy] = []
        seen: set[str] = set()
        for item in items:
            try:
                policy = Policy.from_graph(item)
            except (KeyError, ValueError) as e:
                raise RemoteUnavailable(
                    f"Unreadable policy {item.get('id', '<no id>')}: {type(e).__name__}: {e}"
                ) from e
            if policy.id in seen:
                logger.warning(f"[{self.name}] Duplicate policy id {policy.id} ignored")
                continue
            seen.add(policy.id)
            policies.append(policy)

        logger.info(
            f"[{self.name}] Completed in {time.monotonic() - started:.2f}s — "
            f"{len(policies)} policies"
        )
        return policies
