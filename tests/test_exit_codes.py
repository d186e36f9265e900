"""Tests for exit codes and the error taxonomy."""

import pytest

from grit import exit_codes
from grit.exit_codes import (
    CommandError,
    ConfigCorruptError,
    ConfigError,
    ConfigMissingError,
    DirectoryMissingError,
    LegacyFormatError,
    NotAGitRepoError,
    RepoNotFoundError,
    RepositoryNotFoundError,
    get_exit_code_for_exception,
)


class TestErrorTaxonomy:
    @pytest.mark.parametrize("error, code", [
        (ConfigMissingError('/ws/.grit/config.yml'), exit_codes.CONFIG_ERROR),
        (ConfigCorruptError('/ws/.grit/config.yml', 'bad'), exit_codes.CONFIG_ERROR),
        (LegacyFormatError('/ws/.grit/config.yml'), exit_codes.CONFIG_ERROR),
        (DirectoryMissingError('/nope'), exit_codes.GENERAL_ERROR),
        (NotAGitRepoError('plain'), exit_codes.DATA_ERROR),
        (RepositoryNotFoundError('ghost'), exit_codes.NO_REPOS_FOUND),
        (RepoNotFoundError('ghost'), exit_codes.NO_REPOS_FOUND),
    ])
    def test_exit_codes(self, error, code):
        assert isinstance(error, CommandError)
        assert error.exit_code == code
        assert get_exit_code_for_exception(error) == code

    def test_config_errors_share_base(self):
        assert issubclass(LegacyFormatError, ConfigError)
        assert issubclass(ConfigCorruptError, ConfigError)

    def test_fatal_variant_is_a_not_found(self):
        assert issubclass(RepoNotFoundError, RepositoryNotFoundError)

    def test_messages(self):
        assert str(RepositoryNotFoundError('lib')) == "Could not find repository lib"
        assert str(RepoNotFoundError('lib')) == "Repository not found: lib"
        assert str(RepoNotFoundError('lib', '/ws/lib')) == "Repository lib not found at /ws/lib"


class TestExceptionMapping:
    def test_builtin_exceptions(self):
        assert get_exit_code_for_exception(PermissionError()) == exit_codes.PERMISSION_ERROR
        assert get_exit_code_for_exception(KeyboardInterrupt()) == exit_codes.INTERRUPTED

    def test_unknown_exception(self):
        assert get_exit_code_for_exception(RuntimeError()) == exit_codes.GENERAL_ERROR

