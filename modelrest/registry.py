"""
Model descriptor registry

Model definitions are validated once at startup. A definition that can't be
processed doesn't abort the startup: the model is registered as incomplete and
all its routes respond with a fixed error.

A definition is a mapping with these (optional) members:

    props:    {name: {type: ..., nullable: ..., default: ..., index: ...}}
    computed: {name: ComputedProperty | getter(record) | {"get": getter, "set": setter}}
    options:  {expose: bool, promote: bool}
    access:   predicate(request, model) replacing the default exposure check
    hooks:    lifecycle hooks of the persistence layer, ignored here
"""
from dataclasses import replace
from typing import Any, Dict, Iterator, List, Mapping, Optional

import yaml

import modelrest
from .errors import SystemValidationError
from .model import ComputedProperty, ModelDescriptor

DEFINITION_KEYS = ("props", "computed", "options", "access", "hooks")
RESERVED_PROPERTIES = ("uuid",)

log = modelrest.log.getChild("registry")


class DefinitionError(ValueError):
    """
    Raised for an invalid model definition, turned into an incomplete model descriptor
    """


def _computed_property(name: str, definition: Any) -> ComputedProperty:
    if isinstance(definition, ComputedProperty):
        return definition if definition.name == name else replace(definition, name=name)
    if isinstance(definition, Mapping):
        getter = definition.get("get")
        setter = definition.get("set")
        if not callable(getter) or (setter is not None and not callable(setter)):
            raise DefinitionError(f'computed property "{name}" requires a callable getter and setter')
        return ComputedProperty(name, getter, setter)
    if callable(definition):
        return ComputedProperty(name, definition)
    raise DefinitionError(f'invalid definition of computed property "{name}"')


def compile_definition(name: str, definition: Optional[Mapping[str, Any]]) -> ModelDescriptor:
    """
    :param name: model name
    :param definition: model definition
    :return: ModelDescriptor
    :raises DefinitionError: if the definition is invalid
    """
    if not isinstance(name, str) or not name.strip():
        raise DefinitionError(f"invalid model name {name!r}")
    definition = {} if definition is None else definition
    if not isinstance(definition, Mapping):
        raise DefinitionError("model definition must be a mapping")

    unknown = [key for key in definition if key not in DEFINITION_KEYS]
    if unknown:
        raise DefinitionError(f"unsupported definition sections: {', '.join(map(str, unknown))}")

    prop_definitions = definition.get("props") or {}
    if not isinstance(prop_definitions, Mapping):
        raise DefinitionError("model properties must be a mapping")
    props: Dict[str, Dict[str, Any]] = {}
    for prop_name, prop in prop_definitions.items():
        prop = {} if prop is None else prop
        if not isinstance(prop, Mapping):
            raise DefinitionError(f'definition of property "{prop_name}" must be a mapping')
        if prop_name in RESERVED_PROPERTIES:
            raise DefinitionError(f'property name "{prop_name}" is reserved')
        props[prop_name] = dict(prop)

    computed_definitions = definition.get("computed") or {}
    if not isinstance(computed_definitions, Mapping):
        raise DefinitionError("computed properties must be a mapping")
    computed: Dict[str, ComputedProperty] = {}
    for computed_name, computed_definition in computed_definitions.items():
        if computed_name in props or computed_name in RESERVED_PROPERTIES:
            raise DefinitionError(f'computed property "{computed_name}" clashes with a property')
        computed[computed_name] = _computed_property(computed_name, computed_definition)

    options = definition.get("options") or {}
    if not isinstance(options, Mapping):
        raise DefinitionError("model options must be a mapping")

    access = definition.get("access")
    if access is not None and not callable(access):
        raise DefinitionError("access predicate must be callable")

    try:
        return ModelDescriptor(name=name, props=props, computed=computed, options=options, access=access)
    except TypeError as exc:
        # unsupported property type
        raise DefinitionError(str(exc))


class ModelRegistry:
    """
    Ordered collection of model descriptors, keyed by model name
    """

    def __init__(self, models: Optional[List[ModelDescriptor]] = None) -> None:
        self._models: Dict[str, ModelDescriptor] = {}
        for model in models or []:
            self.add(model)

    def __iter__(self) -> Iterator[ModelDescriptor]:
        return iter(self._models.values())

    def __len__(self) -> int:
        return len(self._models)

    def __contains__(self, name: object) -> bool:
        return name in self._models

    def __getitem__(self, name: str) -> ModelDescriptor:
        return self._models[name]

    def get(self, name: str) -> Optional[ModelDescriptor]:
        return self._models.get(name)

    @property
    def names(self) -> List[str]:
        return list(self._models)

    def add(self, model: ModelDescriptor) -> ModelDescriptor:
        if model.name in self._models:
            raise SystemValidationError(f"model {model.name} has been registered before")
        self._models[model.name] = model
        return model

    def register(self, name: str, definition: Optional[Mapping[str, Any]] = None) -> ModelDescriptor:
        """
        Compile and register a model definition

        :return: the model descriptor, incomplete if the definition is invalid
        """
        try:
            model = compile_definition(name, definition)
        except DefinitionError as exc:
            log.error(f"Model {name} is incomplete: {exc}")
            model = ModelDescriptor.incomplete(str(name), str(exc))
        return self.add(model)

    @classmethod
    def from_definitions(cls, definitions: Mapping[str, Optional[Mapping[str, Any]]]) -> "ModelRegistry":
        registry = cls()
        for name, definition in definitions.items():
            registry.register(name, definition)
        return registry

    @classmethod
    def from_yaml(cls, path: str) -> "ModelRegistry":
        """
        Load model definitions from a yaml file, either a mapping of model names into
        definitions or such a mapping in a top-level "models" member.
        Computed properties and access predicates can't be defined in yaml.
        """
        with open(path, "rt") as fp:
            definitions = yaml.safe_load(fp) or {}
        if isinstance(definitions, Mapping) and isinstance(definitions.get("models"), Mapping):
            definitions = definitions["models"]
        if not isinstance(definitions, Mapping):
            raise SystemValidationError(f"invalid model definitions in {path}")
        return cls.from_definitions(definitions)
