"""Kernel module inspection hooks."""

from .base import IModuleInspector, NoOpInspector, inspector_from_config, module_copy
from .modinfo import ModinfoInspector


__all__ = [
    "IModuleInspector",
    "NoOpInspector",
    "ModinfoInspector",
    "inspector_from_config",
    "module_copy",
]
