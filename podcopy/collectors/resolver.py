"""Resolve label selectors to the pods they currently match."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from podcopy.core.models import Node
from podcopy.errors import SelectorError
from podcopy.providers.k8s_provider import K8sProvider

logger = logging.getLogger(__name__)


def resolve(provider: K8sProvider, namespace: str, selectors: Sequence[str]) -> Tuple[List[Node], Dict[str, str]]:
    """
    Query pods for each selector independently.

    Returns (nodes, selector_errors). A failing selector is recorded under its own text
    and never hides nodes found by its siblings. Nodes matched by several selectors are
    returned once per match; the caller owns de-duplication.

    An empty selector list means one unfiltered query for the whole namespace.
    """
    queries: List[Optional[str]] = list(selectors) if selectors else [None]

    nodes: List[Node] = []
    selector_errors: Dict[str, str] = {}
    for selector in queries:
        try:
            found = provider.list_pods(namespace, selector)
        except SelectorError as e:
            key = selector or ""
            logger.warning("Selector %r in namespace %s failed: %s", key, namespace, e.message)
            selector_errors[key] = e.message
            continue
        logger.debug("Selector %r matched %d pod(s) in %s", selector, len(found), namespace)
        nodes.extend(found)

    return nodes, selector_errors


__all__ = ["resolve"]
