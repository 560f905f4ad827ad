"""global variables for the swarmgate application.

This module contains global variables that are shared between the startup phases, such as the selected profile and the configuration name.
"""

import sys
from pathlib import Path

# base directory of the application executable
base_path = Path(
	sys.executable if getattr(sys, "frozen", False) else __file__
).parent

# application configuration inside the base directory (usefull for portable installations)
user_data_path = (
	base_path / Path("user_data")
	if (base_path / "user_data").exists()
	else None
)

# profile directory given with --profile, takes precedence over user_data_path
profile_path = None

# configuration name given with --configuration, empty for the default one
configuration_name = ""
