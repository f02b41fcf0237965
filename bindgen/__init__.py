"""
Binding generation policy layer.

Module configuration, declaration filtering, the generic pass suite, the
pass pipeline, namespace renaming and manifest emission.
"""

from bindgen.module_config import (
    GenerationOptions,
    ModuleDescriptor,
    build_generation_options,
    build_module,
    scan_directory,
)
from bindgen.decl_filter import (
    DEFAULT_RULES,
    FilterDecision,
    FilterRule,
    FilterRuleSet,
    apply_filter,
    evaluate_rules,
    make_filter_stage,
)
from bindgen.passes import TranslationUnitPass, default_passes
from bindgen.pipeline import GenerationPipeline, PipelineStage, build_pipeline
from bindgen.renamer import (
    DEFAULT_NAMESPACE_RENAMES,
    make_rename_stage,
    rename_colliding_namespaces,
)
from bindgen.emitter import emit_declarations

__all__ = [
    # Module configuration
    "GenerationOptions",
    "ModuleDescriptor",
    "build_generation_options",
    "build_module",
    "scan_directory",
    # Declaration filter
    "DEFAULT_RULES",
    "FilterDecision",
    "FilterRule",
    "FilterRuleSet",
    "apply_filter",
    "evaluate_rules",
    "make_filter_stage",
    # Passes and pipeline
    "TranslationUnitPass",
    "default_passes",
    "GenerationPipeline",
    "PipelineStage",
    "build_pipeline",
    # Renamer
    "DEFAULT_NAMESPACE_RENAMES",
    "make_rename_stage",
    "rename_colliding_namespaces",
    # Output
    "emit_declarations",
]
