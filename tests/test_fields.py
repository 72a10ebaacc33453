"""Tests for value classification and record flattening."""

import functools
import types
import weakref

import pytest

from exporters import to_array
from exporters.fields import (
    element_token,
    has_auxiliary_enumeration,
    is_record,
    is_sequence,
    iter_raw_fields,
    sequence_items,
)


class T:
    def __init__(self):
        self.__x = 5


class Visibility:
    def __init__(self):
        self.public = 1
        self._protected = 2
        self.__private = 3
        self.__dunder__ = 4


class Base:
    def __init__(self):
        self.__secret = "base"


class Derived(Base):
    def __init__(self):
        super().__init__()
        self.own = "derived"


class Slotted:
    __slots__ = ("a", "__b", "unset", "__weakref__")

    def __init__(self):
        self.a = 1
        self.__b = 2


class SlottedChild(Slotted):
    __slots__ = ("c",)

    def __init__(self):
        super().__init__()
        self.c = 3


class Item:
    pass


class Labelled:
    def __repr__(self):
        return "Labelled()"


class TestClassification:
    """Tests for sequence and record detection."""
    
    @pytest.mark.parametrize("value", [[], (), {}, set(), frozenset()])
    def test_sequences(self, value):
        """Test builtin containers are sequences, not records."""
        assert is_sequence(value)
        assert not is_record(value)
    
    @pytest.mark.parametrize("value", [None, True, 1, 1.5, "s", b"b", object(), len, int, types])
    def test_not_records(self, value):
        """Test scalars, classes, modules and builtins are not records."""
        assert not is_record(value)
    
    def test_records(self):
        """Test instances with attribute storage are records."""
        assert is_record(T())
        assert is_record(Slotted())
        assert is_record(SlottedChild())
    
    def test_own_repr_without_fields(self):
        """Test that field-less objects with their own repr are not records."""
        labelled = Labelled()
        
        assert not is_record(functools.partial(int, "7"))
        assert not is_record(labelled)
        
        labelled.tag = 1
        assert is_record(labelled)
        assert is_record(ValueError())
    
    def test_auxiliary_enumeration(self):
        """Test which values are enumerated instead of read through fields."""
        assert has_auxiliary_enumeration(types.MappingProxyType({}))
        assert has_auxiliary_enumeration(weakref.WeakSet())
        assert has_auxiliary_enumeration(weakref.WeakKeyDictionary())
        assert not has_auxiliary_enumeration({})
        assert not has_auxiliary_enumeration(set())
        assert not has_auxiliary_enumeration(T())
        assert is_record(types.MappingProxyType({}))
    
    def test_sequence_items(self):
        """Test sequence entries in rendering order."""
        assert sequence_items(["a", "b"]) == [(0, "a"), (1, "b")]
        assert sequence_items({"k": 1}) == [("k", 1)]
        assert sequence_items({"b", "a"}) == [(0, "a"), (1, "b")]
    
    def test_unorderable_set(self):
        """Test sets whose elements cannot be compared."""
        items = sequence_items({1, "a"})
        
        assert sorted(str(item) for _, item in items) == ["1", "a"]
        assert [key for key, _ in items] == [0, 1]


class TestToArray:
    """Tests for flattening values into mappings."""
    
    def test_private_field(self):
        """Test that a private field is listed under its bare name."""
        assert to_array(T()) == {"x": 5}
    
    def test_visibility(self):
        """Test public, protected, private and dunder names."""
        assert to_array(Visibility()) == {
            "public": 1,
            "protected": 2,
            "private": 3,
            "__dunder__": 4,
        }
    
    def test_inherited_private_field(self):
        """Test private fields declared by a base class."""
        assert to_array(Derived()) == {"secret": "base", "own": "derived"}
    
    def test_slots(self):
        """Test slotted records skip unset and bookkeeping slots."""
        result = to_array(Slotted())
        
        assert result == {"a": 1, "b": 2}
        assert "__weakref__" not in result
        assert "unset" not in result
    
    def test_inherited_slots(self):
        """Test that base class slots come first."""
        assert list(to_array(SlottedChild())) == ["a", "b", "c"]
    
    def test_raw_fields_keep_storage_keys(self):
        """Test raw storage keys before projection."""
        assert list(iter_raw_fields(Visibility())) == [
            ("public", 1),
            ("_protected", 2),
            ("_Visibility__private", 3),
            ("__dunder__", 4),
        ]
    
    def test_exception(self):
        """Test that exceptions flatten to their args, attributes and links."""
        cause = KeyError("k")
        error = OSError(2, "missing")
        error.__cause__ = cause
        error.add_note("while loading")
        
        result = to_array(error)
        
        assert list(result) == ["args", "__notes__", "__cause__"]
        assert result["args"] == (2, "missing")
        assert result["__notes__"] == ["while loading"]
        assert result["__cause__"] is cause
    
    def test_scalars(self):
        """Test that scalars flatten to an empty mapping."""
        assert to_array(None) == {}
        assert to_array(1) == {}
        assert to_array("text") == {}
    
    def test_sequences(self):
        """Test that sequences flatten to their own entries."""
        assert to_array([1, 2]) == {0: 1, 1: 2}
        assert to_array({"a": 1}) == {"a": 1}
    
    def test_does_not_alias_input(self):
        """Test that the flattened dict is a copy."""
        value = {"a": 1}
        
        result = to_array(value)
        result["b"] = 2
        
        assert value == {"a": 1}
    
    def test_mapping_proxy(self):
        """Test that mappings list each key with its value."""
        assert to_array(types.MappingProxyType({"k": "v"})) == {
            element_token("k"): {"obj": "k", "inf": "v"},
        }
    
    def test_weak_set(self):
        """Test that weak sets list their elements without side values."""
        item = Item()
        container = weakref.WeakSet([item])
        
        assert to_array(container) == {element_token(item): {"obj": item, "inf": None}}
    
    def test_weak_key_dictionary(self):
        """Test that weak key dictionaries ignore their raw storage."""
        item = Item()
        container = weakref.WeakKeyDictionary({item: "info"})
        
        result = to_array(container)
        
        assert result == {element_token(item): {"obj": item, "inf": "info"}}
        assert "data" not in result
    
    def test_element_token(self):
        """Test identity tokens are 32 hex digits."""
        token = element_token(object())
        
        assert len(token) == 32
        int(token, 16)
