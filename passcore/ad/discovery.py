from __future__ import annotations

import logging
import socket

import dns.exception
import dns.resolver

from .errors import DirectoryError

log = logging.getLogger(__name__)


def host_domain() -> str:
    """DNS domain of this machine (`dc1.corp.example.com` -> `corp.example.com`)."""
    fqdn = (socket.getfqdn() or "").strip().rstrip(".")
    if "." not in fqdn:
        return ""
    return fqdn.split(".", 1)[1]


def discover_domain_controller(domain: str, timeout_s: float = 5.0) -> str:
    """Locate a domain controller via the `_ldap._tcp.dc._msdcs` SRV record.

    Records are ordered by priority, then by descending weight.
    """
    domain = (domain or "").strip().strip(".")
    if not domain:
        raise DirectoryError("Default domain is unknown: set DEFAULT_DOMAIN")

    resolver = dns.resolver.Resolver()
    resolver.timeout = timeout_s
    resolver.lifetime = timeout_s

    name = f"_ldap._tcp.dc._msdcs.{domain}"
    try:
        answers = resolver.resolve(name, "SRV")
    except dns.resolver.NXDOMAIN as e:
        raise DirectoryError(f"No domain controller SRV record for '{domain}'") from e
    except dns.resolver.NoAnswer as e:
        raise DirectoryError(f"DNS returned no SRV answer for '{name}'") from e
    except dns.exception.DNSException as e:
        raise DirectoryError(f"Domain controller lookup for '{domain}' failed: {e}") from e

    records = sorted(answers, key=lambda r: (r.priority, -r.weight))
    for r in records:
        target = str(r.target).rstrip(".")
        if target:
            log.debug("Domain controller for %s: %s", domain, target)
            return target
    raise DirectoryError(f"No usable domain controller for '{domain}'")
