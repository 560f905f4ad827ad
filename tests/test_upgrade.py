"""Tests for the preferences upgrade step."""

from unittest import mock

import pytest
import yaml

from swarmgate.config import conf
from swarmgate.config.migration import migrate_v1
from swarmgate.consts import CURRENT_CONFIG_VERSION
from swarmgate.errors import UpgradeError
from swarmgate.upgrade import upgrade, upgrade_config


@pytest.fixture
def config_path(isolated_profile):
	"""Return the path of the preferences file."""
	return isolated_profile / "config.yml"


def write_config(path, content):
	"""Write a preferences file."""
	path.write_text(yaml.dump(content), encoding="UTF-8")


def read_config(path):
	"""Read a preferences file."""
	return yaml.safe_load(path.read_text(encoding="UTF-8"))


class TestMigrateV1:
	"""Tests for migrate_v1."""

	def test_legacy_keys_moved(self):
		"""Top-level keys are moved into their sections."""
		migrated = migrate_v1(
			{"accepted_legal": True, "log_level": "debug", "other": 1}
		)
		assert migrated == {
			"other": 1,
			"general": {"legal_notice_accepted": True, "log_level": "debug"},
			"config_version": 2,
		}

	def test_section_value_wins(self):
		"""A value already in its section is kept."""
		migrated = migrate_v1(
			{"log_level": "debug", "general": {"log_level": "error"}}
		)
		assert migrated["general"] == {"log_level": "error"}

	def test_input_not_modified(self):
		"""The given dictionary is left untouched."""
		original = {"accepted_legal": True}
		migrate_v1(original)
		assert original == {"accepted_legal": True}

	def test_invalid_section(self):
		"""A section that is not a mapping cannot be migrated."""
		with pytest.raises(UpgradeError):
			migrate_v1({"accepted_legal": True, "general": "broken"})


class TestUpgradeConfig:
	"""Tests for upgrade_config."""

	def test_no_file(self, config_path):
		"""Nothing to do without preferences file."""
		assert not upgrade_config()
		assert not config_path.exists()

	def test_current_version(self, config_path):
		"""A file at the current version is not rewritten."""
		write_config(config_path, {"config_version": CURRENT_CONFIG_VERSION})
		assert not upgrade_config()

	def test_legacy_file(self, config_path):
		"""A version 1 file is migrated and saved."""
		write_config(config_path, {"accepted_legal": True, "log_level": "warning"})
		assert upgrade_config()
		saved = read_config(config_path)
		assert saved["config_version"] == CURRENT_CONFIG_VERSION
		assert saved["general"] == {
			"legal_notice_accepted": True,
			"log_level": "warning",
		}
		assert conf().has_accepted_legal_notice()

	def test_newer_version(self, config_path):
		"""A file written by a newer version is refused."""
		write_config(config_path, {"config_version": CURRENT_CONFIG_VERSION + 1})
		with pytest.raises(UpgradeError, match="newer version"):
			upgrade_config()

	def test_invalid_yaml(self, config_path):
		"""A file that cannot be parsed is an upgrade error."""
		config_path.write_text("general: [unclosed", encoding="UTF-8")
		with pytest.raises(UpgradeError):
			upgrade_config()

	def test_invalid_migrated_value(self, config_path):
		"""Migrated values are validated."""
		write_config(config_path, {"log_level": "chatty"})
		with pytest.raises(UpgradeError, match="invalid"):
			upgrade_config()


class TestUpgrade:
	"""Tests for upgrade."""

	def test_success(self, config_path):
		"""A successful upgrade continues the startup."""
		write_config(config_path, {"accepted_legal": True})
		assert upgrade()

	def test_failure_without_asking(self, config_path):
		"""A failure stops the startup when nobody can be asked."""
		write_config(config_path, {"config_version": 99})
		confirm = mock.Mock(return_value=True)
		assert not upgrade(ask=False, confirm=confirm)
		confirm.assert_not_called()

	@pytest.mark.parametrize("answer", [True, False])
	def test_failure_asks_user(self, config_path, answer):
		"""A failure asks the user whether to continue."""
		write_config(config_path, {"config_version": 99})
		confirm = mock.Mock(return_value=answer)
		assert upgrade(ask=True, confirm=confirm) is answer
		confirm.assert_called_once()
