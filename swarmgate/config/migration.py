"""Schema migrations of the preferences file.

Version 1 files kept every preference at the top level. Version 2 groups them in the general and instance sections and records config_version.
"""

import logging
from typing import Callable

from swarmgate.consts import CURRENT_CONFIG_VERSION
from swarmgate.errors import UpgradeError

log = logging.getLogger(__name__)

# legacy top-level key: (section, key) in the current schema
LEGACY_KEYS = {
	"accepted_legal": ("general", "legal_notice_accepted"),
	"log_level": ("general", "log_level"),
	"splash_screen_disabled": ("general", "splash_screen_disabled"),
	"crash_reporting": ("general", "crash_reporting"),
	"settle_delay_ms": ("instance", "settle_delay_ms"),
}


def migrate_v1(conf_dict: dict) -> dict:
	"""Move the legacy top-level keys into their sections.

	A value already present in a section wins over the legacy one.

	Args:
		conf_dict: The raw content of a version 1 file.

	Returns:
		The migrated content.

	Raises:
		UpgradeError: If a section is not a mapping.
	"""
	migrated = dict(conf_dict)
	for legacy_key, (section, key) in LEGACY_KEYS.items():
		if legacy_key not in migrated:
			continue
		value = migrated.pop(legacy_key)
		section_dict = migrated.setdefault(section, {})
		if not isinstance(section_dict, dict):
			raise UpgradeError(f"section {section!r} is not a mapping")
		# sections may be shared with the caller's dictionary
		migrated[section] = section_dict = dict(section_dict)
		section_dict.setdefault(key, value)
		log.debug("Migrated %s to %s.%s", legacy_key, section, key)
	migrated["config_version"] = 2
	return migrated


MIGRATIONS: dict[int, Callable[[dict], dict]] = {1: migrate_v1}


def get_config_version(conf_dict: dict) -> int:
	"""Get the schema version of raw preferences.

	Args:
		conf_dict: The raw content of a preferences file.

	Returns:
		The recorded config_version, 1 for files written before it existed.

	Raises:
		UpgradeError: If the recorded version is not a positive integer.
	"""
	version = conf_dict.get("config_version", 1)
	if isinstance(version, bool) or not isinstance(version, int) or version < 1:
		raise UpgradeError(f"invalid config_version: {version!r}")
	return version


def migrate(conf_dict: dict) -> dict:
	"""Apply every migration from the recorded version to CURRENT_CONFIG_VERSION.

	Content already at the current version, or written by a newer version, is returned unchanged.

	Args:
		conf_dict: The raw content of a preferences file.

	Returns:
		The content in the current schema.

	Raises:
		UpgradeError: If the version is invalid or a migration fails.
	"""
	version = get_config_version(conf_dict)
	while version < CURRENT_CONFIG_VERSION:
		log.info("Migrating preferences from config_version %d", version)
		conf_dict = MIGRATIONS[version](conf_dict)
		version = conf_dict["config_version"]
	return conf_dict
