"""
Public representation of model schemas, as returned by the .schema endpoints.

Options that are functions or null are omitted, index definitions are never published.
"""
from typing import Any, Dict, Iterable

from .model import INDEX_OPTIONS, ModelDescriptor
from .policy import AccessPolicy
from .prop_types import DEFAULT_TYPE


def extract_public_data(model: ModelDescriptor, omit_computed: bool = False) -> Dict[str, Any]:
    """
    :param model: model to describe
    :param omit_computed: leave out the computed properties
    :return: {"name": ..., "props": {...}, "computed": {name: accepts_value}}
    """
    props: Dict[str, Dict[str, Any]] = {}
    for name, prop in model.props.items():
        public = props[name] = {"type": prop.get("type") or DEFAULT_TYPE}
        for option_name, option in prop.items():
            if option_name.lower() == "type" or option_name.lower() in INDEX_OPTIONS:
                continue
            if option is None or callable(option):
                continue
            public[option_name] = option

    result: Dict[str, Any] = {"name": model.name, "props": props}
    if not omit_computed:
        result["computed"] = {name: computed.accepts_value for name, computed in model.computed.items()}
    return result


def aggregate_schema(request: Any, models: Iterable[ModelDescriptor], policy: AccessPolicy) -> Dict[str, Dict[str, Any]]:
    """
    :return: public schemas of all complete models that may be exposed and promoted, keyed by route name
    """
    result = {}
    for model in models:
        if not model.is_complete:
            continue
        if policy.may_be_exposed(request, model) and policy.may_be_promoted(model):
            result[model.route_name] = extract_public_data(model)
    return result
