"""
Known-good parallel groupings for common intents.

Each pattern is a list of batches: tools inside a batch can run together, and
batches run one after another. This is a lookup table, not a planner; callers
that get ``None`` back fall through to the dependency analyzer.
"""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from toolplan.types import ToolName

QuickPlan = Tuple[Tuple[ToolName, ...], ...]

QUICK_PLANS: Mapping[str, QuickPlan] = MappingProxyType(
    {
        # Search the CRM and the web at the same time
        "research": (("sf_search", "research_company"),),
        "comprehensive_search": (("sf_query", "sf_search"),),
        # Search first, then create
        "create_with_search": (("sf_search",), ("sf_create_lead",)),
        "bulk_create": (("sf_create_lead", "sf_create_task"),),
    }
)

_WORD_RE = re.compile(r"\w+")


def get_quick_plan(intent: Optional[str], query: str = "") -> Optional[QuickPlan]:
    """
    Look up a pre-grouped plan for an intent or query.

    Args:
        intent: Classified intent, may name a pattern directly
        query: Raw user query

    Returns:
        The matching tool batches, or None when no pattern applies
    """
    if intent and intent in QUICK_PLANS:
        return QUICK_PLANS[intent]

    query_lower = query.lower()
    if "research" in query_lower:
        return QUICK_PLANS["research"]

    words = set(_WORD_RE.findall(query_lower))
    if "all" in words and ("find" in words or "search" in words):
        return QUICK_PLANS["comprehensive_search"]

    return None
