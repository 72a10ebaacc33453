"""Classification of exported values and flattening of records into mappings."""

import logging
import types
from collections.abc import Mapping, Set as AbstractSet
from typing import Any, Dict, Iterator, List, Optional, Tuple


# Sequence-like values rendered as "Array"
SEQUENCE_TYPES = (list, tuple, dict, set, frozenset)

# Values that carry attribute storage but are code or namespaces, not data
NON_RECORD_TYPES = (
    type,
    types.ModuleType,
    types.FunctionType,
    types.MethodType,
    types.BuiltinFunctionType,
    types.MethodWrapperType,
    types.WrapperDescriptorType,
    types.MethodDescriptorType,
    types.ClassMethodDescriptorType,
    types.GetSetDescriptorType,
    types.MemberDescriptorType,
    types.CodeType,
    types.FrameType,
    types.TracebackType,
)

# Runtime bookkeeping slots that never hold user data
BOOKKEEPING_SLOTS = {"__weakref__", "__dict__"}

# Keys of the per-element record built for enumerable records
ELEMENT_KEY = "obj"
INFO_KEY = "inf"

# Exception state that lives outside of the instance dict
EXCEPTION_LINKS = ("__cause__", "__context__")


logger = logging.getLogger(__name__)


def is_sequence(value: Any) -> bool:
    """Check if a value renders as an Array."""
    return isinstance(value, SEQUENCE_TYPES)


def is_record(value: Any) -> bool:
    """
    Check if a value renders as an Object.
    
    A record is any instance with attribute storage (``__dict__`` or
    ``__slots__``) that is not a sequence, string, class, module or callable
    internals. Enumerable records qualify even without attribute storage.
    Instances without any field whose type defines its own ``__repr__`` are
    left to repr().
    """
    if value is None or isinstance(value, (bool, int, float, complex, str, bytes, bytearray, memoryview)):
        return False
    if is_sequence(value) or isinstance(value, NON_RECORD_TYPES):
        return False
    if has_auxiliary_enumeration(value):
        return True
    if _instance_dict(value) is None and not any(_declared_slots(cls) for cls in type(value).__mro__):
        return False
    
    # Field-less instances of types with their own repr() keep their state
    # elsewhere (functools.partial, C extension types), so repr() says more
    if type(value).__repr__ is not object.__repr__:
        return next(iter_raw_fields(value), None) is not None
    
    return True


def has_auxiliary_enumeration(value: Any) -> bool:
    """
    Check if a record is enumerated instead of read through its fields.
    
    Mappings that are not dicts (``WeakKeyDictionary``, ``MappingProxyType``,
    custom ``Mapping`` classes) and sets that are not builtin sets
    (``WeakSet``, key views) keep their content outside of plain attribute
    storage, so their elements are listed together with the side value the
    container associates with each one.
    """
    if isinstance(value, (dict, set, frozenset)):
        return False
    return isinstance(value, (Mapping, AbstractSet))


def type_name(value: Any) -> str:
    """Get the display name of a value's type."""
    return type(value).__qualname__


def sequence_items(value: Any) -> List[Tuple[Any, Any]]:
    """
    Get the (key, value) entries of a sequence in rendering order.
    
    Lists and tuples are keyed by position and dicts by their own keys. Sets
    have no order of their own, so their elements are sorted when they can be
    compared and listed in iteration order otherwise.
    """
    if isinstance(value, dict):
        return list(value.items())
    if isinstance(value, (set, frozenset)):
        try:
            elements = sorted(value)
        except Exception:
            elements = list(value)
        return list(enumerate(elements))
    return list(enumerate(value))


def to_array(value: Any) -> Dict[Any, Any]:
    """
    Convert a value to a mapping of its entries.
    
    Records are flattened to their fields with mangled private names and
    protected underscore prefixes projected to the bare field name. Runtime
    bookkeeping slots are skipped. Sequences map to their own entries and
    any other value maps to an empty dict.
    
    Args:
        value: The value to flatten.
    
    Returns:
        Ordered mapping of bare field name (or entry key) to value.
    """
    if is_sequence(value):
        return dict(sequence_items(value))
    
    if not is_record(value):
        return {}
    
    if has_auxiliary_enumeration(value):
        return _enumerate_with_info(value)
    
    class_names = [cls.__name__ for cls in type(value).__mro__]
    
    array: Dict[Any, Any] = {}
    for key, field_value in iter_raw_fields(value):
        array[_bare_name(key, class_names)] = field_value
    
    return array


def iter_raw_fields(value: Any) -> Iterator[Tuple[str, Any]]:
    """
    Iterate over a record's raw field storage as (storage key, value) pairs.
    
    Slots come first, from the base class down to the most derived one,
    followed by the instance ``__dict__`` in insertion order. Unset slots are
    skipped. Exceptions also list their ``args`` first and their cause and
    context last, when set.
    """
    if isinstance(value, BaseException):
        yield "args", value.args
    
    for cls in reversed(type(value).__mro__):
        for slot in _declared_slots(cls):
            storage_key = _mangle(slot, cls.__name__)
            try:
                slot_value = object.__getattribute__(value, storage_key)
            except AttributeError:
                continue
            yield storage_key, slot_value
    
    storage = _instance_dict(value)
    if storage:
        yield from list(storage.items())
    
    if isinstance(value, BaseException):
        for link in EXCEPTION_LINKS:
            linked = getattr(value, link)
            if linked is not None:
                yield link, linked


def _enumerate_with_info(value: Any) -> Dict[str, Dict[str, Any]]:
    """
    Flatten an enumerable record into element token -> {obj, inf} entries.
    
    The container's own iteration may fail part way (a weak entry collected
    mid-walk, a broken custom Mapping). Entries collected up to that point
    are kept.
    """
    array: Dict[str, Dict[str, Any]] = {}
    
    try:
        if isinstance(value, Mapping):
            pairs = value.items()
        else:
            pairs = ((element, None) for element in value)
        
        for element, info in pairs:
            array[element_token(element)] = {ELEMENT_KEY: element, INFO_KEY: info}
    except Exception as e:
        logger.debug(f"Enumeration of {type_name(value)} stopped after {len(array)} entries: {e}")
    
    return array


def element_token(element: Any) -> str:
    """Get the 32 hex digit identity token of an object."""
    return format(id(element), "032x")


def _bare_name(key: Any, class_names: List[str]) -> Any:
    """
    Project a storage key onto the bare field name.
    
    private   __name   -> "_Class__name" -> "name"
    protected _name    -> "_name"        -> "name"
    public    name     -> "name"         -> "name"
    """
    if not isinstance(key, str) or not key.startswith("_"):
        return key
    if key.startswith("__") and key.endswith("__"):
        return key
    
    for class_name in class_names:
        stem = class_name.lstrip("_")
        if not stem:
            continue
        prefix = f"_{stem}__"
        if key.startswith(prefix) and len(key) > len(prefix):
            return key[len(prefix):]
    
    if key.startswith("__") or len(key) == 1:
        return key
    
    return key[1:]


def _mangle(name: str, class_name: str) -> str:
    """Apply Python's private name mangling to a slot name."""
    stem = class_name.lstrip("_")
    if stem and name.startswith("__") and not name.endswith("__"):
        return f"_{stem}{name}"
    return name


def _declared_slots(cls: type) -> Tuple[str, ...]:
    """Get the data slots a class declares itself (inherited ones excluded)."""
    slots = cls.__dict__.get("__slots__", ())
    if isinstance(slots, str):
        slots = (slots,)
    return tuple(slot for slot in slots if slot not in BOOKKEEPING_SLOTS)


def _instance_dict(value: Any) -> Optional[Dict[str, Any]]:
    """Get an instance's attribute dict without triggering custom lookups."""
    try:
        storage = object.__getattribute__(value, "__dict__")
    except AttributeError:
        return None
    return storage if isinstance(storage, dict) else None
