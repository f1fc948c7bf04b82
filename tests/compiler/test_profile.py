"""Unit tests for compiler profiles."""

import pytest

from blackdwarf.compiler.profile import (
    BUILTIN_PROFILES_DIR,
    CompilerProfile,
    CompilerProfileLoader,
    env_var_names,
    mangle_source,
    setting_names,
)
from blackdwarf.core.exceptions import (
    CompilerProfileError,
    CompilerProfileInvalidError,
    CompilerProfileNotFoundError,
)

CC_FIELDS = """\
command: mycc
compile_format: ["%command", "%compile_only_flag", "%source"]
verbose_flag: -v
debug_flag: -g
compile_only_flag: -c
include_path_option: -I
output_option: -o
output_format: "%source_basename.o"
"""


@pytest.fixture
def profiles_dir(tmp_path):
    """Empty directory for user profiles."""
    directory = tmp_path / "profiles"
    directory.mkdir()
    return directory


def write_profile(directory, name, text):
    path = directory / f"{name}.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestBuiltinProfiles:
    """Test the profiles shipped with the package."""

    @pytest.mark.unit
    @pytest.mark.parametrize("name", ["cc", "gcc", "clang"])
    def test_builtin_profiles_load(self, name):
        profile = CompilerProfileLoader().load(name)

        assert profile.name == name
        assert profile.command == name
        assert profile.compile_format[0] == "%command"
        assert profile.output_format == "%source_basename.o"

    @pytest.mark.unit
    def test_builtin_directory_is_searched_last(self, profiles_dir):
        loader = CompilerProfileLoader([profiles_dir])

        assert loader.search_dirs == [profiles_dir, BUILTIN_PROFILES_DIR]

    @pytest.mark.unit
    def test_list_available(self):
        names = CompilerProfileLoader().list_available()

        assert {"cc", "gcc", "clang"} <= set(names)
        assert names == sorted(names)

    @pytest.mark.unit
    def test_load_is_cached(self):
        loader = CompilerProfileLoader()

        assert loader.load("gcc") is loader.load("gcc")


class TestUserProfiles:
    """Test loading profiles from user directories."""

    @pytest.mark.unit
    def test_user_profile_shadows_builtin(self, profiles_dir):
        write_profile(profiles_dir, "gcc", CC_FIELDS)

        profile = CompilerProfileLoader([profiles_dir]).load("gcc")

        assert profile.command == "mycc"

    @pytest.mark.unit
    def test_extends_overrides_fields(self, profiles_dir):
        # Arrange
        write_profile(
            profiles_dir, "cross", "extends: gcc.yaml\ncommand: arm-none-eabi-gcc\n"
        )

        # Act
        profile = CompilerProfileLoader([profiles_dir]).load("cross")

        # Assert
        assert profile.command == "arm-none-eabi-gcc"
        assert profile.debug_flag == "-g"
        assert "%includes" in profile.compile_format

    @pytest.mark.unit
    def test_empty_yaml_value_is_empty_string(self, profiles_dir):
        write_profile(profiles_dir, "quiet", "extends: cc\nverbose_flag:\n")

        profile = CompilerProfileLoader([profiles_dir]).load("quiet")

        assert profile.verbose_flag == ""

    @pytest.mark.unit
    def test_circular_extends(self, profiles_dir):
        write_profile(profiles_dir, "a", "extends: b\n")
        write_profile(profiles_dir, "b", "extends: a\n")

        with pytest.raises(CompilerProfileError) as exc_info:
            CompilerProfileLoader([profiles_dir]).load("a")

        assert "Circular extends detected: a -> b -> a" in str(exc_info.value)

    @pytest.mark.unit
    def test_profile_not_found_lists_available(self):
        with pytest.raises(CompilerProfileNotFoundError) as exc_info:
            CompilerProfileLoader().load("nonexistent")

        assert "Available profiles:" in str(exc_info.value)
        assert "gcc" in str(exc_info.value)

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "text,fragment",
        [
            ("", "Empty profile file"),
            ("- a\n- b\n", "must be a mapping"),
            ("command: [unclosed\n", "Invalid YAML syntax"),
            (CC_FIELDS + "colour: red\n", "unknown fields: colour"),
            ("command: cc\n", "missing required fields"),
            ("extends: cc\ncompile_format: '%command %source'\n", "list of strings"),
            ("extends: cc\ndebug_flag: 3\n", "debug_flag must be a string"),
        ],
    )
    def test_invalid_profiles(self, profiles_dir, text, fragment):
        write_profile(profiles_dir, "broken", text)

        with pytest.raises(CompilerProfileInvalidError) as exc_info:
            CompilerProfileLoader([profiles_dir]).load("broken")

        assert fragment in str(exc_info.value)


class TestSettings:
    """Test setting lookup and environment overrides."""

    @pytest.fixture
    def profile(self):
        return CompilerProfileLoader().load("gcc")

    @pytest.mark.unit
    def test_mangle_source(self):
        assert mangle_source("eg/tomato/san_marzano.c") == "EG_TOMATO_SAN_MARZANO_C"

    @pytest.mark.unit
    def test_env_var_names_most_specific_first(self):
        assert env_var_names("debug_flag", "eg/pomodoro.c") == [
            "BLACKDWARF_COMPILER_EG_POMODORO_C_DEBUG_FLAG",
            "BLACKDWARF_COMPILER_DEBUG_FLAG",
        ]
        assert env_var_names("command") == ["BLACKDWARF_COMPILER_COMMAND"]

    @pytest.mark.unit
    def test_setting_names(self):
        assert setting_names()[:2] == ("command", "compile_format")
        assert "name" not in setting_names()

    @pytest.mark.unit
    def test_profile_value_without_overrides(self, profile):
        assert profile.setting("command", source="a.c", environ={}) == "gcc"

    @pytest.mark.unit
    def test_global_override(self, profile):
        environ = {"BLACKDWARF_COMPILER_COMMAND": "gcc-13"}

        assert profile.setting("command", source="a.c", environ=environ) == "gcc-13"

    @pytest.mark.unit
    def test_per_source_override_wins(self, profile):
        environ = {
            "BLACKDWARF_COMPILER_COMMAND": "gcc-13",
            "BLACKDWARF_COMPILER_EG_POMODORO_C_COMMAND": "gcc-12",
        }

        assert profile.setting("command", "eg/pomodoro.c", environ) == "gcc-12"
        assert profile.setting("command", "eg/other.c", environ) == "gcc-13"

    @pytest.mark.unit
    def test_compile_format_override_is_split_on_spaces(self, profile):
        environ = {"BLACKDWARF_COMPILER_COMPILE_FORMAT": "%command  -c %source"}

        value = profile.setting("compile_format", environ=environ)

        assert value == ["%command", "-c", "%source"]

    @pytest.mark.unit
    def test_process_environment_is_default(self, profile, clean_compiler_env):
        clean_compiler_env.setenv("BLACKDWARF_COMPILER_DEBUG_FLAG", "-g3")

        assert profile.setting("debug_flag") == "-g3"

    @pytest.mark.unit
    def test_unknown_setting(self, profile):
        with pytest.raises(KeyError):
            profile.setting("linker", environ={})

    @pytest.mark.unit
    def test_include_paths_override(self, profile):
        environ = {"BLACKDWARF_COMPILER_A_C_INCLUDE_PATHS": "/x,,/y"}

        assert profile.include_paths(["/inc"], "a.c", environ) == ["/x", "/y"]
        assert profile.include_paths(["/inc"], "b.c", environ) == ["/inc"]

    @pytest.mark.unit
    def test_from_dict(self):
        data = {key: "" for key in setting_names()}
        data["compile_format"] = ["%command"]

        profile = CompilerProfile.from_dict("tiny", data)

        assert profile.compile_format == ("%command",)
