"""Post-pass namespace renaming.

The native tree defines a namespace that, once case-normalized, is ``Std``;
left as is it collides with the ``Std`` namespace commonly opened by managed
consumers. Renames are exact-name only and run after every other stage,
because the filter and the passes match on the pre-rename names.
"""

from __future__ import annotations

import logging
from typing import Callable, Mapping, Optional

from core.generator_config import DEFAULT_NAMESPACE_RENAMES
from extraction.models import DeclarationGraph

logger = logging.getLogger(__name__)


def rename_colliding_namespaces(
    graph: DeclarationGraph,
    renames: Mapping[str, str] = DEFAULT_NAMESPACE_RENAMES,
) -> list[tuple[str, str]]:
    """Rename top-level namespaces whose name exactly matches a key of ``renames``.

    Returns:
        ``(old, new)`` pairs, one per renamed namespace.
    """
    performed: list[tuple[str, str]] = []
    for unit in graph.units:
        for namespace in unit.namespaces:
            target = renames.get(namespace.name)
            if target is None:
                continue
            logger.info("Renaming namespace %s -> %s in %s", namespace.name, target, unit.file_path)
            performed.append((namespace.name, target))
            namespace.name = target
    return performed


def make_rename_stage(
    renames: Mapping[str, str] = DEFAULT_NAMESPACE_RENAMES,
    sink: Optional[list[tuple[str, str]]] = None,
) -> Callable[[DeclarationGraph], DeclarationGraph]:
    """Adapt ``rename_colliding_namespaces`` to a pipeline stage."""

    def rename_namespaces(graph: DeclarationGraph) -> DeclarationGraph:
        performed = rename_colliding_namespaces(graph, renames)
        if sink is not None:
            sink.extend(performed)
        return graph

    return rename_namespaces
