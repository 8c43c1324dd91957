"""Model descriptors and records.

A :class:`ModelDescriptor` describes one collection of records: its declared
properties, its computed properties and its exposure options. Descriptors are
created once at startup (cfr. :mod:`modelrest.registry`) and never change afterwards.

A :class:`Record` is a transient view on one entity of a model, the persisted
state is owned by the repository (cfr. :mod:`modelrest.repository`).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, Mapping, Optional

from .prop_types import coerce_value, normalize_type
from .errors import ValidationError
from .util import kebab_case

# property options that are never published in the schema
INDEX_OPTIONS = ("index", "indexes", "indices")

AccessPredicate = Callable[[Any, "ModelDescriptor"], bool]


class ComputedMode(str, Enum):
    READ_ONLY = "ReadOnly"
    READ_WRITE = "ReadWrite"


@dataclass(frozen=True)
class ComputedProperty:
    """
    A property derived from other properties of a record.

    getter(record) returns the computed value,
    setter(record, value) - if given - updates the record from an assigned value
    """

    name: str
    getter: Callable[["Record"], Any]
    setter: Optional[Callable[["Record", Any], None]] = None

    @property
    def mode(self) -> ComputedMode:
        return ComputedMode.READ_WRITE if self.setter is not None else ComputedMode.READ_ONLY

    @property
    def accepts_value(self) -> bool:
        return self.mode is ComputedMode.READ_WRITE


@dataclass(frozen=True, eq=False)
class ModelDescriptor:
    """Schema of one model.

    :param name: model name, its kebab-case form is used as url segment
    :param props: maps property names into their options (type, index, nullable, default, ...)
    :param computed: maps names of computed properties into ComputedProperty instances
    :param options: model options, `expose` and `promote` default to True
    :param access: optional predicate(request, model) replacing the default exposure check
    :param error: set when the definition of the model couldn't be discovered completely
    """

    name: str
    props: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    computed: Mapping[str, ComputedProperty] = field(default_factory=dict)
    options: Mapping[str, Any] = field(default_factory=dict)
    access: Optional[AccessPredicate] = None
    error: Optional[str] = None

    def __post_init__(self) -> None:
        props = {}
        for prop_name, prop in self.props.items():
            prop = dict(prop)
            prop["type"] = normalize_type(prop.get("type"))
            props[prop_name] = MappingProxyType(prop)
        object.__setattr__(self, "props", MappingProxyType(props))
        object.__setattr__(self, "computed", MappingProxyType(dict(self.computed)))
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))

    @classmethod
    def incomplete(cls, name: str, error: str) -> "ModelDescriptor":
        """
        Create a placeholder for a model whose definition is invalid,
        all routes of such a model respond with a fixed error
        """
        return cls(name=name, error=error)

    @property
    def route_name(self) -> str:
        return kebab_case(self.name)

    @property
    def is_complete(self) -> bool:
        return self.error is None

    def prop_type(self, name: str) -> Optional[str]:
        prop = self.props.get(name)
        return None if prop is None else prop["type"]

    def has_property(self, name: str) -> bool:
        return name in self.props or name in self.computed

    def coerce(self, name: str, value: Any) -> Any:
        """
        Convert value to the type of the declared property `name`,
        values of computed or unknown properties are returned as-is
        """
        prop_type = self.prop_type(name)
        if prop_type is None:
            return value
        return coerce_value(prop_type, value, name)

    def new_record(self, uuid: Optional[str] = None) -> "Record":
        return Record(self, uuid)


class Record:
    """
    One entity of a model, identified by its uuid.
    The uuid is None until the record has been saved for the first time.
    """

    def __init__(self, model: ModelDescriptor, uuid: Optional[str] = None, properties: Optional[Dict[str, Any]] = None, loaded: bool = True) -> None:
        self.model = model
        self.uuid = uuid
        self.properties: Dict[str, Any] = {name: None for name in model.props}
        self.loaded = loaded
        if properties:
            for name, value in properties.items():
                if name in model.props:
                    self.properties[name] = value

    def __repr__(self) -> str:
        return f"<{self.model.name} {self.uuid}>"

    def __iter__(self) -> Iterator[str]:
        return iter(self.properties)

    def get(self, name: str, default: Any = None) -> Any:
        """
        :return: value of declared or computed property `name`
        """
        if name in self.properties:
            value = self.properties[name]
        elif name in self.model.computed:
            value = self.model.computed[name].getter(self)
        else:
            return default
        return default if value is None else value

    def assign(self, name: str, value: Any) -> bool:
        """
        Assign value to a declared property or pass it to the setter of a computed property.
        Values for any other name are dropped.

        :return: whether the value has been assigned
        """
        if name == "uuid":
            # immutable once assigned
            return False
        if name in self.model.props:
            self.properties[name] = self.model.coerce(name, value)
            return True
        computed = self.model.computed.get(name)
        if computed is not None and computed.setter is not None:
            computed.setter(self, value)
            return True
        return False

    def update(self, values: Mapping[str, Any]) -> None:
        for name, value in values.items():
            self.assign(name, value)

    def reset(self) -> None:
        """
        Reset all declared properties to null
        """
        for name in self.properties:
            self.properties[name] = None

    def apply_defaults(self) -> None:
        for name, prop in self.model.props.items():
            if self.properties.get(name) is None and prop.get("default") is not None:
                default = prop["default"]
                self.properties[name] = self.model.coerce(name, default() if callable(default) else default)

    def validate(self) -> None:
        """
        Check the constraints of the declared properties before persisting the record
        """
        for name, prop in self.model.props.items():
            if prop.get("nullable", True) is False and self.properties.get(name) is None:
                raise ValidationError(f'missing value for required property "{name}"')

    def to_dict(self) -> Dict[str, Any]:
        """
        :return: flat mapping of the record's uuid and its non-null (computed) property values
        """
        result: Dict[str, Any] = {"uuid": self.uuid}
        if not self.loaded:
            return result
        for name, value in self.properties.items():
            if value is not None:
                result[name] = value
        for name, computed in self.model.computed.items():
            value = computed.getter(self)
            if value is not None:
                result[name] = value
        return result
