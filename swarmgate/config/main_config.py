import logging
from functools import cache

from pydantic import BaseModel, Field, model_validator

from swarmgate.consts import CURRENT_CONFIG_VERSION, DEFAULT_SETTLE_DELAY_MS
from swarmgate.errors import UpgradeError

from .config_enums import LogLevelEnum
from .config_helper import (
	SwarmgateBaseSettings,
	get_settings_config_dict,
	save_config_file,
)
from .migration import migrate

log = logging.getLogger(__name__)

config_file_name = "config.yml"


class GeneralSettings(BaseModel):
	log_level: LogLevelEnum = Field(default=LogLevelEnum.INFO)
	legal_notice_accepted: bool = Field(default=False)
	splash_screen_disabled: bool = Field(default=False)
	crash_reporting: bool = Field(default=True)


class InstanceSettings(BaseModel):
	settle_delay_ms: int = Field(default=DEFAULT_SETTLE_DELAY_MS, ge=0, le=5000)
	forward_timeout: float = Field(default=5.0, gt=0)


class SwarmgateConfig(SwarmgateBaseSettings):
	model_config = get_settings_config_dict()
	config_file_name = config_file_name

	config_version: int = Field(default=CURRENT_CONFIG_VERSION)
	general: GeneralSettings = Field(default_factory=GeneralSettings)
	instance: InstanceSettings = Field(default_factory=InstanceSettings)

	@model_validator(mode="before")
	@classmethod
	def migrate_legacy_preferences(cls, value: dict) -> dict:
		"""Read a file written with an older schema as if it was already upgraded.

		The file itself is rewritten by the upgrade step of the startup.
		"""
		if not isinstance(value, dict):
			return value
		try:
			return migrate(value)
		except UpgradeError as e:
			# the field validation reports the broken content
			log.warning("Unable to read legacy preferences: %s", e)
			return value

	def has_accepted_legal_notice(self) -> bool:
		return self.general.legal_notice_accepted

	def set_accepted_legal_notice(self) -> None:
		"""Record that the legal notice was accepted and persist it."""
		self.general.legal_notice_accepted = True
		self.save()

	def save(self):
		conf_dict = {"config_version": self.config_version}
		conf_dict.update(
			self.model_dump(
				mode="json",
				by_alias=True,
				exclude_defaults=True,
				exclude_none=True,
			)
		)
		save_config_file(conf_dict, config_file_name)


@cache
def get_swarmgate_config() -> SwarmgateConfig:
	log.debug("Loading swarmgate config")
	return SwarmgateConfig()
