"""Principal to username matching.

A transport may authenticate a caller as a principal (for example the
Kerberos principal `alice/example.com@EXAMPLE.COM`) while the caller claims
to act as a username (`alice`). Principal rules decide whether that claim is
acceptable.

A rule's principal pattern is a template: every `${USER}` placeholder is
replaced by the claimed username before the pattern is compiled. The
username is escaped first, so a username such as `.*` only ever matches the
two literal characters `.` and `*`.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Sequence

from dbacl.core.rules import ANY

logger = logging.getLogger(__name__)

USER_PLACEHOLDER = "${USER}"


def expand_principal_template(template: str, user: str) -> str:
    """Substitute the regex-escaped username for every `${USER}` placeholder."""
    # str.replace keeps backslashes in the escaped username intact;
    # re.sub would interpret them as group references.
    return template.replace(USER_PLACEHOLDER, re.escape(user))


@dataclass(frozen=True)
class PrincipalRule:
    """
    One entry of the `principals` rule section.

    Attributes:
        principal_template: Principal pattern, possibly containing `${USER}`.
        allow: Decision returned when the principal matches.
        user_regex: Restricts which claimed usernames the rule applies to.
    """

    principal_template: str
    allow: bool
    user_regex: re.Pattern[str] = ANY

    def applies_to(self, user: str) -> bool:
        return self.user_regex.fullmatch(user) is not None

    def principal_regex(self, user: str) -> re.Pattern[str]:
        return re.compile(expand_principal_template(self.principal_template, user))


class PrincipalUserMatcher:
    """Validates that a principal may act as a claimed username."""

    def __init__(self, rules: Sequence[PrincipalRule] | None):
        """
        Args:
            rules: Ordered principal rules, or None when the rule file has
                   no `principals` section (every claim is then accepted).
        """
        self.rules = tuple(rules) if rules is not None else None

    def validate(self, user: str, principal: str | None) -> bool:
        """
        Return True if `principal` may act as `user`.

        Only the first rule that applies to `user` is consulted: its allow
        flag is the answer when the principal matches, otherwise the claim
        is rejected.
        """
        if self.rules is None:
            return True
        if principal is None:
            logger.debug("No principal supplied for user %r", user)
            return False

        for rule in self.rules:
            if not rule.applies_to(user):
                continue
            if rule.principal_regex(user).fullmatch(principal):
                return rule.allow
            return False

        return False
