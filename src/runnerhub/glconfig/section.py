"""Base model for configuration sections and their per-field emission rules.

``gitlab-runner`` is inconsistent about which keys it writes: some are always
present even at their default, others only appear once set. Rather than deriving
that from a general rule, each field declares its own behaviour with an
:class:`Emit` marker in its ``Annotated`` metadata::

    class Example(ConfigSection):
        image: str = "alpine:latest"                          # always written
        cpus: Annotated[Optional[str], Emit.IF_SET] = None    # written once set

The markers are applied when the section is serialized, so ``model_dump`` and
:meth:`ConfigSection.to_toml_dict` only ever see the keys that belong in the file.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar, Self

from pydantic import BaseModel, ConfigDict, SerializerFunctionWrapHandler, model_serializer
from pydantic.fields import FieldInfo


class Emit(Enum):
    """When a field appears in the rendered configuration."""

    ALWAYS = "always"
    IF_SET = "if_set"
    IF_NOT_EMPTY = "if_not_empty"
    IF_NOT_DEFAULT = "if_not_default"


def emission_of(field: FieldInfo) -> Emit:
    for item in field.metadata:
        if isinstance(item, Emit):
            return item
    return Emit.ALWAYS


class ConfigSection(BaseModel):
    """Immutable configuration section with field-level emission rules."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Fields whose serialized mapping is merged into this section's mapping.
    flatten: ClassVar[tuple[str, ...]] = ()

    @model_serializer(mode="wrap")
    def _apply_emission(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        rendered: dict[str, Any] = {}
        for name, field in type(self).model_fields.items():
            if name not in data:
                continue
            value = data[name]
            if self._omitted(name, field, value):
                continue
            if name in self.flatten and isinstance(value, dict):
                rendered.update(value)
            else:
                rendered[name] = value
        return rendered

    def _omitted(self, name: str, field: FieldInfo, serialized: Any) -> bool:
        emit = emission_of(field)
        if emit is Emit.IF_SET:
            return serialized is None
        if emit is Emit.IF_NOT_EMPTY:
            return serialized is None or (isinstance(serialized, (list, tuple, dict)) and not serialized)
        if emit is Emit.IF_NOT_DEFAULT:
            return getattr(self, name) == field.get_default(call_default_factory=True)
        return False

    def to_toml_dict(self) -> dict[str, Any]:
        """Return the mapping written to ``config.toml`` for this section."""
        return self.model_dump(mode="json")

    def replace(self, **changes: Any) -> Self:
        """Return a validated copy with ``changes`` applied."""
        values = {name: getattr(self, name) for name in type(self).model_fields}
        values.update(changes)
        return type(self).model_validate(values)
