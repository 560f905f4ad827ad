"""Configuration module for swarmgate."""

from .config_enums import LogLevelEnum
from .main_config import (
	GeneralSettings,
	InstanceSettings,
	SwarmgateConfig,
	config_file_name,
)
from .main_config import get_swarmgate_config as conf

__all__ = [
	"conf",
	"config_file_name",
	"GeneralSettings",
	"InstanceSettings",
	"LogLevelEnum",
	"SwarmgateConfig",
]
