import dataclasses
from enum import Enum
import json
from typing import Any, Type, Union, get_args, get_origin, get_type_hints


def clamp(value, min, max):
    return sorted((min, value, max))[1]


class DataclassJSONEncoder(json.JSONEncoder):
    def default(self, o):
        if dataclasses.is_dataclass(o) and not isinstance(o, type):
            return dataclasses.asdict(o)
        if isinstance(o, Enum):
            return o.value
        return super().default(o)


class DataclassJSONDecoder(json.JSONDecoder):
    """
    Decodes a JSON document into an instance of `class_type`.

    Dataclasses are built from a JSON object's members, recursing into fields annotated with other dataclasses,
    `List[...]`, `Dict[str, ...]` and `Optional[...]`. Any other type is only checked against the decoded value, with
    `object` and `Any` accepting anything.

    @throws TypeError
      If the decoded value does not fit `class_type`.
    """

    def __init__(self, class_type: Type, **kwargs) -> None:
        super().__init__(**kwargs)
        self.__class_type = class_type

    def decode(self, s):
        return self._convert(super().decode(s), self.__class_type)

    def _convert(self, value, class_type):
        if class_type is Any or class_type is object:
            return value

        origin = get_origin(class_type)
        if origin is Union:
            return self._convert_union(value, get_args(class_type))
        if origin is list:
            (item_type,) = get_args(class_type) or (Any,)
            if not isinstance(value, list):
                raise TypeError('Expected a JSON array, got {}'.format(type(value).__name__))
            return [self._convert(item, item_type) for item in value]
        if origin is dict:
            _, value_type = get_args(class_type) or (str, Any)
            if not isinstance(value, dict):
                raise TypeError('Expected a JSON object, got {}'.format(type(value).__name__))
            return {key: self._convert(item, value_type) for key, item in value.items()}

        if dataclasses.is_dataclass(class_type):
            return self._convert_dataclass(value, class_type)

        if class_type is float and isinstance(value, int) and not isinstance(value, bool):
            return float(value)
        # bool is a subclass of int, but a JSON `true` is not a number.
        if class_type in (int, float) and isinstance(value, bool):
            raise TypeError('Expected {}, got bool'.format(class_type.__name__))
        if not isinstance(value, class_type):
            raise TypeError('Expected {}, got {}'.format(class_type.__name__, type(value).__name__))
        return value

    def _convert_union(self, value, options):
        if value is None and type(None) in options:
            return None
        for option in options:
            if option is type(None):
                continue
            try:
                return self._convert(value, option)
            except TypeError:
                continue
        raise TypeError('{!r} fits none of {}'.format(value, options))

    def _convert_dataclass(self, value, class_type):
        if not isinstance(value, dict):
            raise TypeError('Expected a JSON object for {}, got {}'.format(class_type.__name__,
                                                                          type(value).__name__))
        try:
            hints = get_type_hints(class_type)
        except NameError as e:
            raise TypeError('Cannot resolve the fields of {}: {}'.format(class_type.__name__, e)) from e

        fields = {f.name: f for f in dataclasses.fields(class_type) if f.init}
        unexpected = set(value) - set(fields)
        if unexpected:
            raise TypeError('Unexpected fields for {}: {}'.format(class_type.__name__, sorted(unexpected)))
        kwargs = {name: self._convert(item, hints.get(name, Any)) for name, item in value.items()}
        return class_type(**kwargs)


def encode(value: Any) -> bytes:
    return json.dumps(value, cls=DataclassJSONEncoder).encode('utf-8')


def decode(data: bytes, class_type: Type) -> Any:
    return json.loads(data.decode('utf-8'), cls=DataclassJSONDecoder, class_type=class_type)
