"""
Global Configuration and Tunable Defaults.

The scoring and layout formulas use empirically chosen constants. They are
collected here as named defaults and wrapped in pydantic models so a project
can override any of them from ``.drillgraph/config.yaml`` without touching
code.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .core.errors import ConfigError
from .core.result import Err, Ok, Result

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(".drillgraph/config.yaml")

# --- Complexity classes ---
# Composite score: complexity + referenceCount * 0.5 + lineCount / 100
COMPLEXITY_LOW_MAX = 5.0
COMPLEXITY_MEDIUM_MAX = 15.0
COMPLEXITY_HIGH_MAX = 30.0
COMPLEXITY_REFERENCE_WEIGHT = 0.5
COMPLEXITY_LINES_DIVISOR = 100.0

# --- Importance (0-20) ---
IMPORTANCE_MAX = 20.0
IMPORTANCE_PER_REFERENCE = 2.0
IMPORTANCE_PUBLIC_BONUS = 5.0
IMPORTANCE_TESTED_BONUS = 3.0
IMPORTANCE_CALLABLE_BONUS = 2.0

# --- Semantic score (0-10) ---
SEMANTIC_MAX = 10.0
SEMANTIC_COMPLEXITY_WEIGHT = 4.0
SEMANTIC_COMPLEXITY_SATURATION = 30.0
SEMANTIC_SYMBOL_DENSITY_WEIGHT = 3.0
SEMANTIC_SYMBOL_DENSITY_SATURATION = 10.0  # children per 100 lines
SEMANTIC_RELATION_WEIGHT = 3.0
SEMANTIC_RELATION_SATURATION = 10.0  # degree

# --- Node size (render radius) ---
SIZE_MIN = 12.0
SIZE_MAX = 40.0
SIZE_DEFAULT_BASE = 18.0
SIZE_IMPORTANCE_DIVISOR = 40.0
SIZE_BASE_BY_KIND: Dict[str, float] = {
    "File": 25.0,
    "Module": 22.0,
    "Class": 20.0,
    "Function": 18.0,
    "Interface": 16.0,
    "Type": 16.0,
    "Variable": 14.0,
    "Import": 14.0,
    "Layer": 30.0,
}
SIZE_COMPLEXITY_MULTIPLIER: Dict[str, float] = {
    "low": 0.8,
    "medium": 1.0,
    "high": 1.3,
    "critical": 1.6,
}

# --- Edge strength (0-5) ---
STRENGTH_MAX = 5.0
STRENGTH_CIRCULAR_DISCOUNT = 0.5
STRENGTH_WEIGHT_STEP = 0.25
STRENGTH_WEIGHT_FACTOR_MIN = 0.5
STRENGTH_WEIGHT_FACTOR_MAX = 1.5
STRENGTH_BASE_BY_RELATIONSHIP: Dict[str, float] = {
    "extends": 4.0,
    "imports": 3.5,
    "implements": 3.5,
    "exports": 3.0,
    "defines": 3.0,
    "contains": 2.5,
    "uses": 2.0,
    "references": 1.5,
}

# --- Labels ---
LABEL_MAX_FILE = 20
LABEL_MAX_OTHER = 15

# --- Relevance (0-1) ---
RELEVANCE_NAME_WEIGHT = 0.6
RELEVANCE_CONTENT_WEIGHT = 0.3
RELEVANCE_KIND_WEIGHT = 0.1
FOCUS_SELECTED_BOOST = 5.0
FOCUS_NEIGHBOR_BOOST = 3.0
FOCUS_IMPORTANCE_MAX = 25.0

# --- Layout selection ---
SMALL_GRAPH_NODE_COUNT = 20
DENSE_GRAPH_DENSITY = 0.3

# --- Navigation ---
ZOOM_MIN = 0.1
ZOOM_MAX = 4.0


class ScoringConfig(BaseModel):
    """Weights and thresholds for enrichment and relevance scoring."""
    complexity_low_max: float = COMPLEXITY_LOW_MAX
    complexity_medium_max: float = COMPLEXITY_MEDIUM_MAX
    complexity_high_max: float = COMPLEXITY_HIGH_MAX
    complexity_reference_weight: float = COMPLEXITY_REFERENCE_WEIGHT
    complexity_lines_divisor: float = COMPLEXITY_LINES_DIVISOR

    importance_max: float = IMPORTANCE_MAX
    importance_per_reference: float = IMPORTANCE_PER_REFERENCE
    importance_public_bonus: float = IMPORTANCE_PUBLIC_BONUS
    importance_tested_bonus: float = IMPORTANCE_TESTED_BONUS
    importance_callable_bonus: float = IMPORTANCE_CALLABLE_BONUS

    semantic_complexity_weight: float = SEMANTIC_COMPLEXITY_WEIGHT
    semantic_complexity_saturation: float = SEMANTIC_COMPLEXITY_SATURATION
    semantic_symbol_density_weight: float = SEMANTIC_SYMBOL_DENSITY_WEIGHT
    semantic_symbol_density_saturation: float = SEMANTIC_SYMBOL_DENSITY_SATURATION
    semantic_relation_weight: float = SEMANTIC_RELATION_WEIGHT
    semantic_relation_saturation: float = SEMANTIC_RELATION_SATURATION

    size_min: float = SIZE_MIN
    size_max: float = SIZE_MAX
    size_default_base: float = SIZE_DEFAULT_BASE
    size_importance_divisor: float = SIZE_IMPORTANCE_DIVISOR
    size_base_by_kind: Dict[str, float] = Field(default_factory=lambda: dict(SIZE_BASE_BY_KIND))
    size_complexity_multiplier: Dict[str, float] = Field(
        default_factory=lambda: dict(SIZE_COMPLEXITY_MULTIPLIER)
    )

    strength_max: float = STRENGTH_MAX
    strength_circular_discount: float = STRENGTH_CIRCULAR_DISCOUNT
    strength_weight_step: float = STRENGTH_WEIGHT_STEP
    strength_weight_factor_min: float = STRENGTH_WEIGHT_FACTOR_MIN
    strength_weight_factor_max: float = STRENGTH_WEIGHT_FACTOR_MAX
    strength_base_by_relationship: Dict[str, float] = Field(
        default_factory=lambda: dict(STRENGTH_BASE_BY_RELATIONSHIP)
    )

    label_max_file: int = LABEL_MAX_FILE
    label_max_other: int = LABEL_MAX_OTHER

    relevance_name_weight: float = RELEVANCE_NAME_WEIGHT
    relevance_content_weight: float = RELEVANCE_CONTENT_WEIGHT
    relevance_kind_weight: float = RELEVANCE_KIND_WEIGHT
    focus_selected_boost: float = FOCUS_SELECTED_BOOST
    focus_neighbor_boost: float = FOCUS_NEIGHBOR_BOOST
    focus_importance_max: float = FOCUS_IMPORTANCE_MAX

    model_config = ConfigDict(extra="ignore")


class SelectorConfig(BaseModel):
    """Thresholds for choosing a layout strategy from graph shape."""
    small_graph_node_count: int = SMALL_GRAPH_NODE_COUNT
    dense_graph_density: float = DENSE_GRAPH_DENSITY

    model_config = ConfigDict(extra="ignore")


class LayoutConfig(BaseModel):
    """Physical parameters of the force simulation and the strategy geometry."""
    seed: int = 42
    max_iterations: int = 300
    energy_threshold: float = 0.05
    alpha_min: float = 0.001
    alpha_decay: float = 0.0228  # 1 - 0.001 ** (1 / 300)
    velocity_decay: float = 0.4
    drag_alpha_target: float = 0.3

    link_distance_base: float = 30.0
    link_distance_span: float = 120.0
    charge_base: float = -200.0
    charge_per_importance: float = -10.0
    charge_distance_max: float = 600.0
    center_strength: float = 0.05
    collision_margin: float = 8.0
    collision_iterations: int = 2

    layer_collision_margin: float = 5.0
    cluster_link_distance: float = 40.0
    cluster_collision_margin: float = 3.0
    cluster_member_radius: float = 30.0
    circular_margin: float = 50.0
    warm_start_alpha: float = 0.3

    overlap_passes: int = 500
    overlap_tolerance: float = 1e-6

    model_config = ConfigDict(extra="ignore")


class EngineConfig(BaseModel):
    """Top-level configuration bundle."""
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    selector: SelectorConfig = Field(default_factory=SelectorConfig)
    layout: LayoutConfig = Field(default_factory=LayoutConfig)

    model_config = ConfigDict(extra="ignore")


def load_config(path: Optional[Union[str, Path]] = None) -> Result[EngineConfig, ConfigError]:
    """
    Load configuration, merging a YAML file over the defaults.

    A missing file is not an error: defaults are returned. An unreadable or
    invalid file yields ``Err(ConfigError)``.
    """
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    if not config_path.exists():
        if path:
            return Err(ConfigError(f"Config file not found: {config_path}", path=str(config_path)))
        return Ok(EngineConfig())

    try:
        with open(config_path, "r") as f:
            data: Any = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to read config {config_path}: {e}")
        return Err(ConfigError(f"Unreadable config: {e}", path=str(config_path)))

    if not isinstance(data, dict):
        return Err(ConfigError("Config root must be a mapping", path=str(config_path)))

    try:
        config = EngineConfig.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Invalid config {config_path}: {e.error_count()} errors")
        return Err(ConfigError(f"Invalid config: {e}", path=str(config_path)))

    logger.debug(f"Loaded config from {config_path}")
    return Ok(config)
