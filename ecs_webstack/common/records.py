#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Base class for the records that make up the stack descriptor.

Records are configuration values: they are set once in ``__init__`` and frozen afterwards.
"""

from __future__ import annotations


def _serialize(value):
    if isinstance(value, DescriptorRecord):
        return value.to_dict()
    if isinstance(value, frozenset):
        return sorted(_serialize(item) for item in value)
    if isinstance(value, (tuple, list)):
        return [_serialize(item) for item in value]
    if isinstance(value, dict):
        return {key: _serialize(item) for key, item in value.items()}
    return value


class DescriptorRecord:
    """
    Immutable record. Subclasses list their attributes in ``fields`` and call ``self.freeze()``
    at the end of their ``__init__``.

    :cvar tuple fields: ordered names of the attributes rendered by to_dict()
    """

    fields = ()
    _frozen = False

    def freeze(self) -> None:
        object.__setattr__(self, "_frozen", True)

    def __setattr__(self, key, value):
        if self._frozen:
            raise AttributeError(
                f"{type(self).__name__} is immutable. Cannot set {key}"
            )
        object.__setattr__(self, key, value)

    def __delattr__(self, key):
        if self._frozen:
            raise AttributeError(
                f"{type(self).__name__} is immutable. Cannot delete {key}"
            )
        object.__delattr__(self, key)

    def to_dict(self) -> dict:
        return {field: _serialize(getattr(self, field)) for field in self.fields}

    def __eq__(self, other):
        if not isinstance(other, DescriptorRecord) or type(other) is not type(self):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self):
        return hash((type(self).__name__, repr(self.to_dict())))

    def __repr__(self):
        name = getattr(self, "name", None)
        if name:
            return f"{type(self).__name__}({name})"
        return f"{type(self).__name__}({self.to_dict()})"
