"""Compiler profiles and compile command rendering."""

from .profile import (
    BUILTIN_PROFILES_DIR,
    DEFAULT_PROFILE,
    CompilerProfile,
    CompilerProfileLoader,
    env_var_names,
    mangle_source,
    setting_names,
)
from .commands import CompileCommand, render_command, render_compile_commands

__all__ = [
    "BUILTIN_PROFILES_DIR",
    "DEFAULT_PROFILE",
    "CompilerProfile",
    "CompilerProfileLoader",
    "env_var_names",
    "mangle_source",
    "setting_names",
    "CompileCommand",
    "render_command",
    "render_compile_commands",
]
