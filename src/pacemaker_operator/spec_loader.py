"""Declaration file loading with validation.

A declaration file is YAML in one of three shapes:

    # single primitive
    name: vip
    agent: ocf:heartbeat:IPaddr2
    params: {ip: "10.0.0.10"}

    # several primitives
    primitives:
      - name: vip
        agent: ocf:heartbeat:IPaddr2

    # Kubernetes-style wrapper around either of the above
    apiVersion: pacemaker-operator/v1
    kind: PrimitiveSet
    spec:
      primitives: [...]

SECURITY: File size is checked before reading.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .config import MAX_SPEC_FILE_SIZE_BYTES
from .models import ResourceSpec

logger = logging.getLogger(__name__)


class SpecLoadError(Exception):
    """Raised when spec loading or validation fails."""

    pass


def _format_validation_error(source: str, e: ValidationError) -> str:
    errors = []
    for error in e.errors():
        loc = ".".join(str(x) for x in error["loc"])
        errors.append(f"  - {loc}: {error['msg']}")
    return f"Validation failed for {source}:\n" + "\n".join(errors)


def parse_specs(raw_data: Any, source: str = "<data>") -> list[ResourceSpec]:
    """Validate already-decoded YAML data into ResourceSpecs.

    Args:
        raw_data: Decoded YAML document.
        source: Name used in error messages.

    Returns:
        Validated specs in declaration order.

    Raises:
        SpecLoadError: If the shape is wrong, validation fails or names repeat.
    """
    if not isinstance(raw_data, dict):
        raise SpecLoadError(f"Spec file must contain a YAML mapping: {source}")

    # Kubernetes-style format: apiVersion, kind, metadata, spec
    if "apiVersion" in raw_data and "spec" in raw_data:
        raw_data = raw_data.get("spec")
        if not isinstance(raw_data, dict):
            raise SpecLoadError(f"Spec section must be a mapping: {source}")

    if "primitives" in raw_data:
        entries = raw_data["primitives"]
        if not isinstance(entries, list):
            raise SpecLoadError(f"'primitives' must be a list: {source}")
    else:
        entries = [raw_data]

    specs: list[ResourceSpec] = []
    seen: set[str] = set()
    for index, entry in enumerate(entries):
        try:
            spec = ResourceSpec.model_validate(entry)
        except ValidationError as e:
            raise SpecLoadError(_format_validation_error(f"{source}[{index}]", e)) from e

        if spec.name in seen:
            raise SpecLoadError(f"Duplicate primitive name '{spec.name}' in {source}")
        seen.add(spec.name)
        specs.append(spec)

    return specs


def load_specs(spec_path: Path) -> list[ResourceSpec]:
    """Load and validate primitive declarations from a YAML file.

    Args:
        spec_path: Path to the declaration file.

    Returns:
        Validated specs in declaration order.

    Raises:
        SpecLoadError: If the file cannot be loaded or fails validation.
    """
    if not spec_path.exists():
        raise SpecLoadError(f"Spec file not found: {spec_path}")

    try:
        file_size = spec_path.stat().st_size
    except OSError as e:
        raise SpecLoadError(f"Failed to stat spec file {spec_path}: {e}") from e

    if file_size > MAX_SPEC_FILE_SIZE_BYTES:
        raise SpecLoadError(
            f"Spec file exceeds maximum size of {MAX_SPEC_FILE_SIZE_BYTES} bytes: {spec_path}"
        )

    try:
        content = spec_path.read_text(encoding="utf-8")
    except OSError as e:
        raise SpecLoadError(f"Failed to read spec file {spec_path}: {e}") from e

    try:
        raw_data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SpecLoadError(f"Invalid YAML in {spec_path}: {e}") from e

    specs = parse_specs(raw_data, str(spec_path))
    logger.info("Loaded %d primitive declaration(s) from %s", len(specs), spec_path)
    return specs
