"""
Platform rule matching for libraries and launch arguments.

Mojang manifests gate libraries and arguments behind ordered rule lists::

    "rules": [
        {"action": "allow"},
        {"action": "disallow", "os": {"name": "osx"}}
    ]

Library rules and argument rules are evaluated differently:

* library rules start out **not** matching; an unconditional ``allow`` flips
  that, the first ``allow`` carrying an ``os`` block decides on its own, and a
  ``disallow`` whose ``os`` block matches the host rejects the library. An
  empty list does not match.
* argument rules match when the list is empty; the first ``allow`` with an
  ``os`` block decides, and any ``allow`` gated on ``features`` rejects the
  argument (no features are ever enabled).

Within an ``os`` block only ``name`` and ``arch`` are compared; ``version``
is accepted but always treated as matching.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence

from mcinstance import env

if TYPE_CHECKING:
    from mcinstance.manifests import OsProperties, Rule


@dataclass(frozen=True)
class RulesContext:
    os_name: str
    os_arch: str
    os_version: str = ""

    @classmethod
    def host(cls) -> RulesContext:
        return cls(
            os_name=env.get_host_os(),
            os_arch=env.get_host_arch(),
            os_version=env.get_host_os_version(),
        )


def matches_library_rules(
    rules: Sequence[Rule], ctx: Optional[RulesContext] = None
) -> bool:
    ctx = ctx or RulesContext.host()
    result = False

    for rule in rules:
        if rule.action == "allow":
            result = True
            # first os-gated allow decides
            if rule.os is not None:
                return _match_os(rule.os, ctx)

        if rule.action == "disallow" and rule.os is not None:
            if _match_os(rule.os, ctx):
                return False

    return result


def matches_argument_rules(
    rules: Sequence[Rule], ctx: Optional[RulesContext] = None
) -> bool:
    ctx = ctx or RulesContext.host()

    for rule in rules:
        if rule.action != "allow":
            continue
        if rule.features is not None:
            return False
        if rule.os is not None:
            return _match_os(rule.os, ctx)

    return True


def _match_os(os: OsProperties, ctx: RulesContext) -> bool:
    # os.version is a regex against the OS release; not compared
    if os.name is not None and os.name != ctx.os_name:
        return False
    if os.arch is not None and os.arch != ctx.os_arch:
        return False
    return True
