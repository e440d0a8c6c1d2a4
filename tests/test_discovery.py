from types import SimpleNamespace
from unittest.mock import patch

import dns.resolver
import pytest

from passcore.ad import DirectoryError
from passcore.ad.discovery import discover_domain_controller


def _srv(target, priority=0, weight=100):
    return SimpleNamespace(target=target, priority=priority, weight=weight)


def test_picks_lowest_priority_highest_weight():
    answers = [
        _srv("dc3.corp.example.com.", priority=10),
        _srv("dc2.corp.example.com.", priority=0, weight=10),
        _srv("dc1.corp.example.com.", priority=0, weight=100),
    ]
    with patch("passcore.ad.discovery.dns.resolver.Resolver") as resolver:
        resolver.return_value.resolve.return_value = answers
        assert discover_domain_controller("corp.example.com") == "dc1.corp.example.com"
        resolver.return_value.resolve.assert_called_once_with("_ldap._tcp.dc._msdcs.corp.example.com", "SRV")


def test_unknown_domain():
    with patch("passcore.ad.discovery.dns.resolver.Resolver") as resolver:
        resolver.return_value.resolve.side_effect = dns.resolver.NXDOMAIN()
        with pytest.raises(DirectoryError, match="No domain controller"):
            discover_domain_controller("corp.example.com")


def test_empty_domain():
    with pytest.raises(DirectoryError, match="DEFAULT_DOMAIN"):
        discover_domain_controller("")
