"""Exporter rendering arbitrary Python values as readable diagnostic text."""

import io
import logging
import math
import re
import socket
from typing import Any, Dict, List, Tuple

from exporters.context import IdentityRegistry
from exporters.fields import (
    is_record,
    is_sequence,
    sequence_items,
    to_array,
    type_name,
)


logger = logging.getLogger(__name__)

# One indentation unit per nesting level
INDENT = "    "

# Shortened export keeps the head and tail of long strings
SHORT_MAX_LENGTH = 40
SHORT_HEAD_LENGTH = 30
SHORT_TAIL_LENGTH = 7

STRING_TYPES = (str, bytes, bytearray, memoryview)

# Handle types and the type tag they are labelled with
RESOURCE_TYPES: Tuple[Tuple[type, str], ...] = (
    (io.IOBase, "stream"),
    (socket.socket, "socket"),
)

# Any byte outside tab..CR and space..0xff marks a string as binary
NON_PRINTABLE = re.compile(rb"[^\x09-\x0d\x20-\xff]")

# Applied in order, so "\r\n\r" collapses to a single "\n"
LINE_ENDINGS = ("\r\n", "\n\r", "\r")


class Exporter:
    """
    Renders values for debugging output.
    
    The output is similar to a generic debug dump, but:
    
    - None is rendered as "null", True and False as "true" and "false"
    - Integral floats keep a visible ".0"
    - Strings are always quoted with single quotes
    - Carriage returns and newlines are normalized to "\\n"
    - Byte strings that are not text are rendered as a hex dump
    - Shared and recursive lists, dicts and objects are numbered and
      referenced instead of being expanded twice
    
    Example:
        >>> Exporter().export([1, None])
        'Array &1 (\\n    0 => 1\\n    1 => null\\n)'
    """
    
    def export(self, value: Any, indentation: int = 0) -> str:
        """
        Export a value as a string.
        
        Args:
            value: The value to export.
            indentation: Nesting level of the second and following lines.
        
        Returns:
            Multi-line text representation of the value.
        """
        return self._recursive_export(value, indentation, IdentityRegistry())
    
    def shortened_export(self, value: Any) -> str:
        """
        Export a value as a single-line string.
        
        Long strings keep their first 30 and last 7 characters, newlines are
        replaced by a visible backslash-n, and the contents of lists, dicts
        and objects are replaced by "...".
        """
        if isinstance(value, STRING_TYPES):
            string = self.export(value)
            
            if len(string) > SHORT_MAX_LENGTH:
                string = string[:SHORT_HEAD_LENGTH] + "..." + string[-SHORT_TAIL_LENGTH:]
            
            return string.replace("\n", "\\n")
        
        if _resource_tag(value) is not None:
            return self.export(value)
        
        if is_record(value):
            marker = "..." if self.to_array(value) else ""
            return f"{type_name(value)} Object ({marker})"
        
        if is_sequence(value):
            marker = "..." if len(value) > 0 else ""
            return f"Array ({marker})"
        
        return self.export(value)
    
    def to_array(self, value: Any) -> Dict[Any, Any]:
        """Convert a value to a mapping of its fields or entries."""
        return to_array(value)
    
    def _recursive_export(self, value: Any, indentation: int, registry: IdentityRegistry) -> str:
        """
        Recursive implementation of export.
        
        Args:
            value: The value to export.
            indentation: Nesting level of the second and following lines.
            registry: Lists, dicts and objects already rendered in this call.
        """
        if value is None:
            return "null"
        
        if value is True:
            return "true"
        
        if value is False:
            return "false"
        
        if isinstance(value, float) and math.isfinite(value) and value.is_integer():
            return f"{value:.0f}.0"
        
        tag = _resource_tag(value)
        if tag is not None:
            return _export_resource(value, tag)
        
        if isinstance(value, STRING_TYPES):
            return _export_string(value)
        
        if is_sequence(value):
            ref_id = registry.contains(value)
            if ref_id is not None:
                return f"Array &{ref_id}"
            
            ref_id = registry.add(value)
            entries = self._export_entries(sequence_items(value), indentation, registry)
            return f"Array &{ref_id} ({entries})"
        
        if is_record(value):
            name = type_name(value)
            
            ref_id = registry.contains(value)
            if ref_id is not None:
                return f"{name} Object &{ref_id}"
            
            ref_id = registry.add(value)
            entries = self._export_entries(list(self.to_array(value).items()), indentation, registry)
            return f"{name} Object &{ref_id} ({entries})"
        
        return _export_fallback(value)
    
    def _export_entries(
        self,
        items: List[Tuple[Any, Any]],
        indentation: int,
        registry: IdentityRegistry,
    ) -> str:
        """Render the body between the parentheses of an Array or Object."""
        if not items:
            return ""
        
        whitespace = INDENT * indentation
        lines: List[str] = []
        
        for key, item in items:
            # Keys never share the registry of the values
            key_text = self._recursive_export(key, indentation, IdentityRegistry())
            item_text = self._recursive_export(item, indentation + 1, registry)
            lines.append(f"{whitespace}{INDENT}{key_text} => {item_text}\n")
        
        return "\n" + "".join(lines) + whitespace


def _resource_tag(value: Any):
    """Get the type tag of a handle, or None if the value is not one."""
    for handle_type, tag in RESOURCE_TYPES:
        if isinstance(value, handle_type):
            return tag
    return None


def _export_resource(value: Any, tag: str) -> str:
    try:
        number = value.fileno()
    except (OSError, ValueError):
        number = -1
    
    if number < 0:
        return "resource(-1) of type (Unknown)"
    
    return f"resource({number}) of type ({tag})"


def _export_string(value: Any) -> str:
    """Quote a text string, or hex dump it if it holds non-printable bytes."""
    if isinstance(value, str):
        raw = value.encode("utf-8", errors="surrogatepass")
    else:
        raw = bytes(value)
    
    if NON_PRINTABLE.search(raw):
        return "Binary String: 0x" + raw.hex()
    
    text = value if isinstance(value, str) else raw.decode("utf-8", errors="replace")
    for ending in LINE_ENDINGS:
        text = text.replace(ending, "\n")
    
    return f"'{text}'"


def _export_fallback(value: Any) -> str:
    """
    Render any other value with repr(), never failing.
    
    Integers too long for decimal conversion (see sys.get_int_max_str_digits)
    are rendered in hex, which has no length limit.
    """
    try:
        text = repr(value)
    except Exception as e:
        if isinstance(value, int):
            return hex(value)
        logger.debug(f"repr() failed for {type_name(value)}: {e}")
        text = ""
    
    if not isinstance(text, str) or not text:
        return f"<{type_name(value)} object at 0x{id(value):x}>"
    
    return text
