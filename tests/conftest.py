"""Common test fixtures for swarmgate."""

import os
import shutil
import tempfile

import pytest

import swarmgate.global_vars as global_vars
from swarmgate.cmdline import CommandLineParameters
from swarmgate.config import conf
from swarmgate.consts import ENV_PREFIX
from swarmgate.process_scanner import ProcessDescriptor


@pytest.fixture(autouse=True)
def isolated_profile(tmp_path, monkeypatch):
	"""Point the preferences and logs to a temporary profile directory."""
	for name in list(os.environ):
		if name.startswith(ENV_PREFIX):
			monkeypatch.delenv(name)
	monkeypatch.setattr(global_vars, "profile_path", str(tmp_path))
	monkeypatch.setattr(global_vars, "user_data_path", None)
	monkeypatch.setattr(global_vars, "configuration_name", "")
	conf.cache_clear()
	yield tmp_path
	conf.cache_clear()


@pytest.fixture
def short_tmp_dir(monkeypatch):
	"""Temporary directory for the lock files and sockets.

	Unix socket paths are limited in length, so pytest's tmp_path cannot be used.
	"""
	path = tempfile.mkdtemp(prefix="sg")
	monkeypatch.setattr("swarmgate.ipc.unix_ipc.TMP_DIR", path, raising=False)
	monkeypatch.setattr(
		"swarmgate.instance_guard.posix_instance_guard.TMP_DIR",
		path,
		raising=False,
	)
	yield path
	shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def default_peer():
	"""Return a peer running the default configuration."""
	return ProcessDescriptor(pid=4242, arguments=("--webui-port=8081",))


@pytest.fixture
def named_peer():
	"""Return a peer running the "work" configuration."""
	return ProcessDescriptor(pid=4343, arguments=("--configuration=work",))


@pytest.fixture
def torrent_params():
	"""Return parameters with a torrent to add."""
	return CommandLineParameters(
		save_path="/data", add_paused=True, torrents=("file.torrent",)
	)
