"""Tests for the configuration matching of scanned processes."""

import itertools

import pytest

from swarmgate.errors import ConfigurationQuotingError
from swarmgate.instance_matcher import (
	candidate_configuration,
	extract_configuration,
	find_match,
)
from swarmgate.process_scanner import ProcessDescriptor


class TestExtractConfiguration:
	"""Tests for extract_configuration."""

	@pytest.mark.parametrize(
		("arguments", "expected"),
		[
			((), None),
			(("-d", "a.torrent"), None),
			(("--configuration=work",), "work"),
			(("-d", "--configuration", "work"), "work"),
			(('--configuration="my config"', "-d"), "my config"),
			(("--configuration", '"a b"'), "a b"),
			(("--configuration=",), ""),
			(("--configuration",), None),
		],
	)
	def test_values(self, arguments, expected):
		"""Both spellings of the option are understood."""
		assert extract_configuration(arguments) == expected

	def test_first_occurrence_wins(self):
		"""Only the first configuration argument counts."""
		assert (
			extract_configuration(
				("--configuration=a", "--configuration=b")
			)
			== "a"
		)

	def test_unbalanced_quotes(self):
		"""An unclosed quote raises a quoting error."""
		with pytest.raises(ConfigurationQuotingError):
			extract_configuration(('--configuration="work',))


class TestCandidateConfiguration:
	"""Tests for candidate_configuration."""

	def test_default(self, default_peer):
		"""A peer without configuration runs the default one."""
		assert candidate_configuration(default_peer) == ""

	def test_named(self, named_peer):
		"""A peer with a configuration runs that configuration."""
		assert candidate_configuration(named_peer) == "work"

	def test_malformed_peer_skipped(self, caplog):
		"""A peer with malformed quoting is logged and ignored."""
		peer = ProcessDescriptor(pid=7, arguments=('--configuration="work',))
		assert candidate_configuration(peer) is None
		assert "malformed configuration" in caplog.text


class TestFindMatch:
	"""Tests for find_match."""

	def test_no_candidates(self):
		"""Nothing matches an empty candidate list."""
		assert not find_match([], "")
		assert not find_match([], "work")

	def test_default_configuration(self, default_peer, named_peer):
		"""The default configuration matches a peer without configuration."""
		assert find_match([named_peer, default_peer], "")
		assert not find_match([named_peer], "")

	def test_named_configuration(self, default_peer, named_peer):
		"""A named configuration only matches the same name."""
		assert find_match([default_peer, named_peer], "work")
		assert not find_match([default_peer, named_peer], "home")

	def test_empty_arguments_only_match_default(self):
		"""A peer with unreadable arguments is a default-configuration peer."""
		unreadable = ProcessDescriptor(pid=9)
		assert find_match([unreadable], "")
		assert not find_match([unreadable], "work")

	def test_quoted_name(self):
		"""Quoted configuration names with spaces match."""
		peer = ProcessDescriptor(
			pid=5, arguments=('--configuration="my config"',)
		)
		assert find_match([peer], "my config")
		assert not find_match([peer], "my")

	def test_order_independent(self, default_peer, named_peer):
		"""The result does not depend on the candidate order."""
		malformed = ProcessDescriptor(pid=7, arguments=('--configuration="x',))
		candidates = [default_peer, named_peer, malformed]
		for desired in ("", "work", "home"):
			results = {
				find_match(list(order), desired)
				for order in itertools.permutations(candidates)
			}
			assert len(results) == 1

	def test_short_circuit(self, named_peer):
		"""Candidates after the first match are not examined."""

		def candidates():
			yield named_peer
			raise AssertionError("examined after the match")

		assert find_match(candidates(), "work")
