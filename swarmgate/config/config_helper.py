"""Location, loading and saving of the swarmgate preference files."""

import logging
from pathlib import Path
from typing import ClassVar

import yaml
from platformdirs import user_config_path as get_user_config_path
from pydantic_settings import (
	BaseSettings,
	PydanticBaseSettingsSource,
	SettingsConfigDict,
	YamlConfigSettingsSource,
)

import swarmgate.global_vars as global_vars
from swarmgate.consts import APP_AUTHOR, APP_NAME, ENV_PREFIX

log = logging.getLogger(__name__)


def get_config_file_path(file_name: str) -> Path:
	"""Get the path of a config file for the current profile and configuration.

	The base directory is, in order of precedence:
	1. the --profile directory if given
	2. user_data_path for portable installations
	3. the platform user config directory

	A non-empty configuration name selects the "<app>_<name>" sub-directory, so each named configuration keeps its own preferences.

	Args:
		file_name: The name of the config file.

	Returns:
		The path to the config file, its directory is not created.
	"""
	if global_vars.profile_path:
		base_dir = Path(global_vars.profile_path)
	elif global_vars.user_data_path:
		base_dir = global_vars.user_data_path
	else:
		base_dir = get_user_config_path(APP_NAME, APP_AUTHOR, roaming=True)
	if global_vars.configuration_name:
		base_dir = base_dir / f"{APP_NAME}_{global_vars.configuration_name}"
	return base_dir / file_name


class SwarmgateBaseSettings(BaseSettings):
	"""Base settings class for swarmgate.

	Subclasses must define a config_file_name class attribute.
	"""

	config_file_name: ClassVar[str]

	@classmethod
	def settings_customise_sources(
		cls,
		settings_cls: type[BaseSettings],
		init_settings: PydanticBaseSettingsSource,
		env_settings: PydanticBaseSettingsSource,
		dotenv_settings: PydanticBaseSettingsSource,
		file_secret_settings: PydanticBaseSettingsSource,
	) -> tuple[PydanticBaseSettingsSource, ...]:
		"""Use the YAML file of the selected profile first, then SWARMGATE_* variables, then explicit arguments. Earlier sources take precedence.

		The file location is resolved on every load, after the command line selected the profile and the configuration.
		"""
		return (
			YamlConfigSettingsSource(
				settings_cls,
				yaml_file=get_config_file_path(cls.config_file_name),
				yaml_file_encoding="UTF-8",
			),
			env_settings,
			init_settings,
		)


def get_settings_config_dict() -> SettingsConfigDict:
	"""Get the settings config dict shared by the swarmgate settings.

	Returns:
		The settings config dict.
	"""
	return SettingsConfigDict(
		env_prefix=ENV_PREFIX,
		env_nested_delimiter="__",
		extra="ignore",
	)


def load_config_file(file_name: str) -> dict:
	"""Load a raw config file without validation.

	Args:
		file_name: The name of the config file.

	Returns:
		The content of the file, an empty dict if the file does not exist or is empty.
	"""
	conf_path = get_config_file_path(file_name)
	if not conf_path.exists():
		return {}
	with conf_path.open(encoding="UTF-8") as config_file:
		return yaml.safe_load(config_file) or {}


def save_config_file(conf_dict: dict, file_name: str) -> None:
	"""Write a preference file as YAML, keeping the key order of the dictionary.

	Args:
		conf_dict: The preferences to write.
		file_name: The name of the config file.
	"""
	log.debug("Saving config file: %s", file_name)
	conf_save_path = get_config_file_path(file_name)
	conf_save_path.parent.mkdir(parents=True, exist_ok=True)
	with conf_save_path.open(mode="w", encoding="UTF-8") as config_file:
		yaml.dump(conf_dict, config_file, indent=2, sort_keys=False)
	log.debug("Config saved to %s", conf_save_path)
