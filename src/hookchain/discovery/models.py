"""Hook declaration models with Pydantic v2 validation."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..chain.base import ExecutionStrategy


def _as_name_tuple(v: Any) -> Any:
    """Accept a single name or a list of names, stripped of whitespace."""
    if v is None:
        return ()
    if isinstance(v, str):
        v = [v]
    if isinstance(v, (list, tuple, set, frozenset)):
        return tuple(item.strip() if isinstance(item, str) else item for item in v)
    return v


class HookSpec(BaseModel):
    """
    Declaration of one hook.

    Attributes:
        name: Hook name
        before: Hooks that must run before this one
        after: Hooks that must run after this one
        callback: Optional import path of the callback ("package.module:attribute")
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1)
    before: tuple[str, ...] = ()
    after: tuple[str, ...] = ()
    callback: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: Any) -> Any:
        """Strip surrounding whitespace from the hook name."""
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("before", "after", mode="before")
    @classmethod
    def normalize_names(cls, v: Any) -> Any:
        return _as_name_tuple(v)

    @field_validator("before", "after")
    @classmethod
    def reject_empty_names(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if any(not item for item in v):
            raise ValueError("constraint names must be non-empty")
        return v

    @field_validator("callback")
    @classmethod
    def validate_callback_path(cls, v: str | None) -> str | None:
        """
        Validate the "module:attribute" form of a callback path.

        Raises:
            ValueError: If either side of the colon is missing.
        """
        if v is None:
            return v
        module, sep, attribute = v.strip().partition(":")
        if not sep or not module or not attribute:
            raise ValueError(f"callback must look like 'package.module:attribute', got {v!r}")
        return f"{module}:{attribute}"

    @model_validator(mode="after")
    def reject_self_constraints(self) -> "HookSpec":
        if self.name in self.before or self.name in self.after:
            raise ValueError(f"hook '{self.name}' cannot be ordered relative to itself")
        return self


class HookManifest(BaseModel):
    """
    Declarative description of a whole hookchain.

    Example (YAML):
        strategy: reactive
        arity: 0
        barriers: [config_loaded]
        hooks:
          - name: load_mods
            after: [config_loaded]
            callback: myapp.startup:load_mods
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    # None defers to the caller's configured defaults
    strategy: ExecutionStrategy | None = None
    arity: int | None = Field(default=None, ge=0)
    barriers: tuple[str, ...] = ()
    hooks: list[HookSpec] = Field(default_factory=list)

    @field_validator("barriers", mode="before")
    @classmethod
    def normalize_barriers(cls, v: Any) -> Any:
        return _as_name_tuple(v)

    @model_validator(mode="after")
    def reject_duplicate_hooks(self) -> "HookManifest":
        seen: set[str] = set()
        duplicates = []
        for spec in self.hooks:
            if spec.name in seen:
                duplicates.append(spec.name)
            seen.add(spec.name)
        if duplicates:
            raise ValueError(f"hooks declared more than once: {', '.join(duplicates)}")
        return self
