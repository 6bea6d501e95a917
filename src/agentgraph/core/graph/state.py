"""State management for the graph system.

This module provides:
1. UpdateStrategy: How a single field absorbs an update (replace/append/merge)
2. GraphState: Base class for typed workflow state. Each subclass gets a
   generated ``Update`` family with one variant per field
3. NodeOutput: What a node hands back to the engine, either a full
   replacement state (``Full``) or an ordered list of updates (``Updates``)

Example:
    ```python
    class CounterState(GraphState):
        count: int = 0
        history: Annotated[List[str], update("append")] = []

    state = CounterState(count=1)
    state.apply_many([
        CounterState.Update.Count(2),
        CounterState.Update.History(["doubled"]),
    ])
    ```
"""

import collections
import collections.abc
import copy
import typing
from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field

from agentgraph.core.errors import StateDefinitionError


class UpdateStrategy(str, Enum):
    """How a field absorbs an update."""
    REPLACE = "replace"
    APPEND = "append"
    MERGE = "merge"


def update(strategy: str) -> UpdateStrategy:
    """Field marker selecting an update strategy.

    Use inside ``Annotated``: ``history: Annotated[List[str], update("append")]``.

    Raises:
        StateDefinitionError: If the strategy name is unknown
    """
    try:
        return UpdateStrategy(strategy)
    except ValueError:
        raise StateDefinitionError(f"Unknown update strategy: {strategy}") from None


_SEQUENCE_ORIGINS = (
    list,
    tuple,
    collections.deque,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
)

_COLLECTION_ORIGINS = _SEQUENCE_ORIGINS + (
    set,
    frozenset,
    dict,
    collections.abc.Set,
    collections.abc.MutableSet,
    collections.abc.Mapping,
    collections.abc.MutableMapping,
)


def _field_origin(annotation: Any) -> Any:
    """Return the container type behind an annotation, unwrapping Optional."""
    origin = typing.get_origin(annotation)
    if origin is typing.Union:
        args = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return _field_origin(args[0])
        return origin
    return origin or annotation


def _check_strategy(owner: str, field_name: str, annotation: Any, strategy: UpdateStrategy) -> None:
    if strategy is UpdateStrategy.REPLACE or annotation is Any:
        return
    origin = _field_origin(annotation)
    allowed = _SEQUENCE_ORIGINS if strategy is UpdateStrategy.APPEND else _COLLECTION_ORIGINS
    is_text = isinstance(origin, type) and issubclass(origin, (str, bytes))
    if is_text or not (isinstance(origin, type) and issubclass(origin, allowed)):
        raise StateDefinitionError(
            f"{owner}.{field_name}: '{strategy.value}' requires a "
            f"{'sequence' if strategy is UpdateStrategy.APPEND else 'collection'} "
            f"field, got {annotation!r}"
        )


def _pascal_case(name: str) -> str:
    return "".join(part[:1].upper() + part[1:] for part in name.split("_") if part)


class StateUpdate:
    """A single field-scoped update.

    Concrete variants are generated for each ``GraphState`` subclass and
    carry the target ``field`` and its ``strategy`` as class attributes.
    """

    field: ClassVar[str] = ""
    strategy: ClassVar[UpdateStrategy] = UpdateStrategy.REPLACE
    variants: ClassVar[Dict[str, Type["StateUpdate"]]] = {}

    __slots__ = ("value",)

    def __init__(self, value: Any):
        if not self.field:
            raise TypeError(f"{type(self).__qualname__} is an update family, not a variant")
        self.value = value

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other) and self.value == other.value

    __hash__ = None

    def __repr__(self) -> str:
        return f"{type(self).__qualname__}({self.value!r})"

    @classmethod
    def for_field(cls, field_name: str) -> Type["StateUpdate"]:
        """Look up the variant class for a field name."""
        try:
            return cls.variants[field_name]
        except KeyError:
            raise KeyError(f"{cls.__qualname__} has no variant for field '{field_name}'") from None


def _build_update_family(state_cls: Type["GraphState"]) -> Type[StateUpdate]:
    owner = state_cls.__name__
    family = type(
        f"{owner}Update",
        (StateUpdate,),
        {
            "__module__": state_cls.__module__,
            "__qualname__": f"{state_cls.__qualname__}.Update",
            "__slots__": (),
        },
    )

    variants: Dict[str, Type[StateUpdate]] = {}
    for field_name, info in state_cls.model_fields.items():
        markers = [m for m in info.metadata if isinstance(m, UpdateStrategy)]
        if len(markers) > 1:
            raise StateDefinitionError(f"{owner}.{field_name}: more than one update strategy")
        strategy = markers[0] if markers else UpdateStrategy.REPLACE
        _check_strategy(owner, field_name, info.annotation, strategy)

        variant_name = _pascal_case(field_name)
        variant = type(
            variant_name,
            (family,),
            {
                "__module__": state_cls.__module__,
                "__qualname__": f"{state_cls.__qualname__}.Update.{variant_name}",
                "__slots__": (),
                "field": field_name,
                "strategy": strategy,
            },
        )
        variants[field_name] = variant
        setattr(family, variant_name, variant)

    family.variants = variants
    return family


def _append(current: Any, items: Iterable[Any]) -> Any:
    if current is None:
        return list(items)
    if isinstance(current, tuple):
        return current + tuple(items)
    extended = copy.copy(current)
    extended.extend(items)
    return extended


def _merge(current: Any, items: Any) -> Any:
    if current is None:
        return copy.copy(items)
    if isinstance(current, tuple):
        return current + tuple(items)
    if isinstance(current, frozenset):
        return current | frozenset(items)
    merged = copy.copy(current)
    if isinstance(merged, (collections.abc.MutableMapping, collections.abc.MutableSet)):
        merged.update(items)
    else:
        merged.extend(items)
    return merged


class GraphState(BaseModel):
    """Base class for typed workflow state.

    Fields are updated through the generated ``Update`` family. Annotate a
    field with ``update("append")`` or ``update("merge")`` to change how it
    absorbs updates; unannotated fields are replaced.

    States have value semantics inside the engine: every node attempt
    receives a deep copy, and ``Updates`` outputs are applied to a copy.
    """

    model_config = ConfigDict(validate_assignment=True, arbitrary_types_allowed=True)

    Update: ClassVar[Type[StateUpdate]] = StateUpdate

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        super().__pydantic_init_subclass__(**kwargs)
        cls.Update = _build_update_family(cls)

    def apply(self, update: StateUpdate) -> None:
        """Apply one update in place according to its field's strategy.

        Raises:
            TypeError: If the update belongs to another state's family
        """
        family = type(self).Update
        if not isinstance(update, family) or not update.field:
            raise TypeError(
                f"{type(self).__name__} cannot apply {type(update).__qualname__}"
            )

        current = getattr(self, update.field)
        if update.strategy is UpdateStrategy.APPEND:
            value = _append(current, update.value)
        elif update.strategy is UpdateStrategy.MERGE:
            value = _merge(current, update.value)
        else:
            value = update.value
        setattr(self, update.field, value)

    def apply_many(self, updates: Iterable[StateUpdate]) -> None:
        """Apply updates in order. An empty iterable leaves the state untouched."""
        for item in updates:
            self.apply(item)

    def clone(self) -> "GraphState":
        """Deep copy of this state."""
        return self.model_copy(deep=True)


def clone_state(state: Any) -> Any:
    """Deep copy any state value, preferring pydantic's copy."""
    if isinstance(state, BaseModel):
        return state.model_copy(deep=True)
    return copy.deepcopy(state)


class NodeOutput(BaseModel):
    """Result of one successful node attempt."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    def fold(self, state: Any) -> Any:
        """Produce the state that follows ``state`` once this output is applied."""
        raise NotImplementedError("Subclasses must implement fold()")

    @staticmethod
    def coerce(value: Any) -> Optional["NodeOutput"]:
        """Normalize what a node returned.

        ``NodeOutput`` passes through, a bare ``GraphState`` becomes ``Full``,
        a list or tuple becomes ``Updates`` and ``None`` becomes an empty
        ``Updates``. Anything else yields ``None``.
        """
        if isinstance(value, NodeOutput):
            return value
        if value is None:
            return Updates()
        if isinstance(value, GraphState):
            return Full(value)
        if isinstance(value, (list, tuple)):
            return Updates(list(value))
        return None


class Full(NodeOutput):
    """The node produced a complete replacement state."""

    state: Any

    def __init__(self, state: Any, **data: Any):
        super().__init__(state=state, **data)

    def fold(self, state: Any) -> Any:
        return self.state


class Updates(NodeOutput):
    """The node produced an ordered, possibly empty, list of updates."""

    updates: List[Any] = Field(default_factory=list)

    def __init__(self, updates: Optional[Iterable[Any]] = None, **data: Any):
        super().__init__(updates=list(updates or []), **data)

    def fold(self, state: Any) -> Any:
        new_state = clone_state(state)
        new_state.apply_many(self.updates)
        return new_state
