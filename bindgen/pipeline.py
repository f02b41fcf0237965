"""Generation pipeline: filter, generic passes, renamer.

A pipeline is an ordered list of named stages, each a callable taking the
declaration graph and returning it (mutated in place or replaced). The
order is fixed by construction:

1. pre-pass stages (the declaration filter);
2. the generic passes, in registration order;
3. post-pass stages (the namespace renamer).

Every stage runs inside a logging ``phase_scope`` named after it. The first
failure aborts the run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Optional, Sequence

from core.errors import GenerationError
from core.structured_logging import phase_scope
from bindgen.decl_filter import FilterDecision, FilterRuleSet, make_filter_stage
from bindgen.passes import TranslationUnitPass, default_passes
from bindgen.renamer import DEFAULT_NAMESPACE_RENAMES, make_rename_stage
from extraction.models import DeclarationGraph

logger = logging.getLogger(__name__)

StageFunc = Callable[[DeclarationGraph], Optional[DeclarationGraph]]


@dataclass(frozen=True)
class PipelineStage:
    """A named transformation of the declaration graph."""

    name: str
    func: StageFunc

    def __call__(self, graph: DeclarationGraph) -> Optional[DeclarationGraph]:
        return self.func(graph)


def pass_stage(translation_pass: TranslationUnitPass) -> PipelineStage:
    """Wrap a generic pass as a pipeline stage."""
    return PipelineStage(name=translation_pass.name, func=translation_pass)


class GenerationPipeline:
    """Ordered pre-pass, pass and post-pass stages over a declaration graph."""

    def __init__(
        self,
        pre_stages: Iterable[PipelineStage] = (),
        passes: Iterable[TranslationUnitPass] = (),
        post_stages: Iterable[PipelineStage] = (),
    ) -> None:
        self.pre_stages: list[PipelineStage] = list(pre_stages)
        self.passes: list[TranslationUnitPass] = list(passes)
        self.post_stages: list[PipelineStage] = list(post_stages)
        self.executed_stages: list[str] = []

    def add_pass(self, translation_pass: TranslationUnitPass) -> None:
        self.passes.append(translation_pass)

    @property
    def stages(self) -> list[PipelineStage]:
        return [
            *self.pre_stages,
            *(pass_stage(p) for p in self.passes),
            *self.post_stages,
        ]

    def run(self, graph: DeclarationGraph) -> DeclarationGraph:
        """Run every stage in order and return the final graph.

        Raises:
            GenerationError: If a stage fails. Errors other than
                ``GenerationError`` are wrapped with the stage name.
        """
        self.executed_stages = []
        for stage in self.stages:
            with phase_scope(stage.name):
                logger.debug("Running stage %s", stage.name)
                try:
                    result = stage(graph)
                except GenerationError:
                    logger.error("Stage %s rejected the declaration graph", stage.name)
                    raise
                except Exception as e:
                    raise GenerationError(f"Stage '{stage.name}' failed: {e}") from e
                if result is not None:
                    graph = result
            self.executed_stages.append(stage.name)
        logger.info("Pipeline finished: %d stages", len(self.executed_stages))
        return graph


def build_pipeline(
    rules: FilterRuleSet,
    renames: Mapping[str, str] = DEFAULT_NAMESPACE_RENAMES,
    passes: Optional[Sequence[TranslationUnitPass]] = None,
    decisions: Optional[list[FilterDecision]] = None,
    renamed: Optional[list[tuple[str, str]]] = None,
) -> GenerationPipeline:
    """Pipeline with the filter first, ``passes`` next and the renamer last.

    Args:
        rules: Declaration filter rules.
        renames: Exact namespace renames applied after all passes.
        passes: Generic passes; ``default_passes()`` when omitted.
        decisions: Optional list collecting every filter decision.
        renamed: Optional list collecting performed namespace renames.
    """
    return GenerationPipeline(
        pre_stages=[PipelineStage("filter-declarations", make_filter_stage(rules, decisions))],
        passes=default_passes() if passes is None else passes,
        post_stages=[PipelineStage("rename-namespaces", make_rename_stage(renames, renamed))],
    )
