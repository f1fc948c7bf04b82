"""Compile command rendering.

Turns a build plan and a compiler profile into argument vectors, one per
source file, in build order. Commands are only rendered here; running them
is up to the caller.
"""

import logging
import os
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional, Tuple

from blackdwarf.compiler.profile import CompilerProfile
from blackdwarf.config.schema import Target
from blackdwarf.core.exceptions import ProjectError, UnknownSubstitutionError
from blackdwarf.graph.resolver import BuildPlan

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompileCommand:
    """
    One compiler invocation.

    Attributes:
        target: Name of the target the source belongs to
        source: Project-relative source path
        argv: Full argument vector, argv[0] being the compiler
        output: Rendered output path, if the format has %output
    """

    target: str
    source: str
    argv: Tuple[str, ...]
    output: Optional[str] = None

    def shell_line(self) -> str:
        return shlex.join(self.argv)

    def to_dict(self):
        return {
            "target": self.target,
            "source": self.source,
            "argv": list(self.argv),
            "output": self.output,
        }


def include_dirs_for(plan: BuildPlan, target: Target) -> List[str]:
    """
    Include directories of a target followed by those of its transitive
    dependencies, first occurrence kept.
    """
    dirs = list(target.include_dirs)
    for name in plan.graph.transitive_dependencies(target.name):
        dirs.extend(plan.config[name].include_dirs)

    result: List[str] = []
    for path in dirs:
        text = path.as_posix()
        if text not in result:
            result.append(text)
    return result


def relative_source(project_dir: Path, source: str) -> Tuple[Path, Path, str]:
    """
    Normalized project root plus absolute and project-relative source paths.

    Raises:
        ProjectError: If the source lies outside the project directory
    """
    root = Path(os.path.normpath(os.path.abspath(project_dir)))
    absolute = Path(os.path.normpath(root / source))
    try:
        relative = absolute.relative_to(root)
    except ValueError:
        raise ProjectError(f"Source file {source} is not in project dir {root}")
    return root, absolute, relative.as_posix()


def render_command(
    profile: CompilerProfile,
    project_dir: Path,
    target: str,
    source: str,
    include_dirs: List[str],
    debug: bool = False,
    verbose: bool = False,
    environ: Optional[Mapping[str, str]] = None,
) -> CompileCommand:
    """
    Render the command that compiles one source file.

    Args:
        profile: Compiler profile
        project_dir: Directory of the project file
        target: Target name, recorded on the result
        source: Source path relative to project_dir
        include_dirs: Include directories relative to project_dir
        debug: Include the debug flag
        verbose: Include the verbose flag
        environ: Environment for overrides (defaults to os.environ)

    Returns:
        CompileCommand

    Raises:
        ProjectError: If the source lies outside the project directory
        UnknownSubstitutionError: On an unknown %word in the format
    """
    root, absolute, short = relative_source(project_dir, source)

    def setting(key):
        return profile.setting(key, source=short, environ=environ)

    includes = profile.include_paths(
        [str(root / path) for path in include_dirs], source=short, environ=environ
    )

    argv: List[str] = []
    output = None
    for word in setting("compile_format"):
        if word == "%command":
            argv.append(setting("command"))
        elif word == "%verbose_flag":
            if verbose:
                argv.append(setting("verbose_flag"))
        elif word == "%debug_flag":
            if debug:
                argv.append(setting("debug_flag"))
        elif word == "%compile_only_flag":
            argv.append(setting("compile_only_flag"))
        elif word == "%includes":
            for path in includes:
                argv.append(setting("include_path_option"))
                argv.append(path)
        elif word == "%source":
            argv.append(str(absolute))
        elif word == "%output_option":
            argv.append(setting("output_option"))
        elif word == "%output":
            basename = str(absolute.with_name(absolute.stem))
            output = setting("output_format").replace("%source_basename", basename)
            argv.append(output)
        elif word.startswith("%"):
            raise UnknownSubstitutionError(word)
        else:
            argv.append(word)

    logger.debug(f"Compile {short}: {argv}")
    return CompileCommand(target=target, source=short, argv=tuple(argv), output=output)


def render_compile_commands(
    plan: BuildPlan,
    profile: CompilerProfile,
    project_dir: Path,
    debug: bool = False,
    verbose: bool = False,
    environ: Optional[Mapping[str, str]] = None,
) -> List[CompileCommand]:
    """
    Render compile commands for every source of every target, in build order.

    Example:
        >>> for command in render_compile_commands(plan, profile, root):
        ...     print(command.shell_line())
        gcc -c /proj/eg/tomato/san_marzano.c -o /proj/eg/tomato/san_marzano.o
    """
    commands = []
    for target in plan.targets():
        include_dirs = include_dirs_for(plan, target)
        for source in target.sources:
            commands.append(
                render_command(
                    profile,
                    project_dir,
                    target.name,
                    source.as_posix(),
                    include_dirs,
                    debug=debug,
                    verbose=verbose,
                    environ=environ,
                )
            )
    logger.debug(f"Rendered {len(commands)} compile commands")
    return commands
