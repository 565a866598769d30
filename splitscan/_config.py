"""
_config.py
==========
Run configuration loaded from YAML.

Layout
------
    lineages: [A, B]
    queries: [Q1]
    options:
      output: results.csv
      backend: best

``options`` is flattened into the model's top-level fields.  Unknown keys
are ignored.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from splitscan._taxa import TaxonRegistry

logger = logging.getLogger(__name__)


class RunConfig(BaseModel):
    """
    Taxon groups and options for one accumulation run.

    Attributes
    ----------
    lineages : list[str]
        Lineage labels, any order.
    queries : list[str]
        Query labels, any order.
    output : Path or None
        Results CSV path.  The command line may override it.
    backend : str
        'best', 'python' or 'cpu-parallel'.
    """

    lineages: List[str] = Field(..., description="Lineage taxon labels")
    queries: List[str] = Field(default_factory=list, description="Query taxon labels")
    output: Optional[Path] = Field(default=None, description="Results CSV path")
    backend: Literal["best", "python", "cpu-parallel"] = Field(
        default="best", description="Execution backend"
    )

    @field_validator("lineages", "queries", mode="before")
    @classmethod
    def coerce_labels(cls, v: Any) -> Any:
        """YAML reads labels such as ``1234`` as numbers; keep them as text."""
        if v is None:
            return []
        if isinstance(v, list):
            return [str(x) if isinstance(x, (int, float)) else x for x in v]
        return v

    @field_validator("lineages", "queries")
    @classmethod
    def check_labels(cls, v: List[str]) -> List[str]:
        if any(not label for label in v):
            raise ValueError("Taxon labels must be non-empty strings")
        if len(set(v)) != len(v):
            dupes = sorted({x for x in v if v.count(x) > 1})
            raise ValueError(f"Duplicate taxon labels: {dupes}")
        return v

    @model_validator(mode="after")
    def check_disjoint(self) -> "RunConfig":
        overlap = sorted(set(self.lineages) & set(self.queries))
        if overlap:
            raise ValueError(f"Taxa listed as both lineages and queries: {overlap}")
        return self

    model_config = {"frozen": True}

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "RunConfig":
        """
        Load a run configuration from a YAML file.

        Raises
        ------
        FileNotFoundError   if the file does not exist.
        ValueError          if the file is not valid YAML, is not a mapping or
                            fails validation.
        """
        path = Path(path)
        try:
            raw = yaml.safe_load(path.read_text())
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(raw, dict):
            raise ValueError(f"YAML config must be a mapping, got {type(raw).__name__}")
        logger.info("Loaded configuration from %s", path)
        return cls(**_flatten_yaml_config(raw))

    def registries(self) -> Tuple[TaxonRegistry, TaxonRegistry]:
        """Return unsorted ``(lineages, queries)`` registries."""
        return TaxonRegistry(self.lineages), TaxonRegistry(self.queries)


def _flatten_yaml_config(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Lift ``options.output`` and ``options.backend`` to the top level."""
    flat: Dict[str, Any] = {}
    for key in ("lineages", "queries"):
        if key in raw:
            flat[key] = raw[key]
    options = raw.get("options") or {}
    if not isinstance(options, dict):
        raise ValueError(f"'options' must be a mapping, got {type(options).__name__}")
    for key in ("output", "backend"):
        if options.get(key) is not None:
            flat[key] = options[key]
    return flat
