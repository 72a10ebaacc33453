"""Exporters for rendering Python values as readable diagnostic text."""

from .context import IdentityRegistry
from .value_exporter import Exporter

_default_exporter = Exporter()

export = _default_exporter.export
shortened_export = _default_exporter.shortened_export
to_array = _default_exporter.to_array

__all__ = ["Exporter", "IdentityRegistry", "export", "shortened_export", "to_array"]
