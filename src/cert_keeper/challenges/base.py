"""Abstract base class for challenge providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Self

from acme import challenges


class ChallengeProvider(ABC):
    """Answers one kind of ACME challenge on behalf of the client.

    The client calls ``present`` for every authorization, then ``wait`` for
    each, answers the challenges, and finally ``cleanup`` for every
    presented one.
    """

    challenge_type: type[challenges.KeyAuthorizationChallenge]

    def close(self) -> None:
        """Release resources. Override in subclasses that hold open sockets or connections."""

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @abstractmethod
    def present(self, domain: str, chall: challenges.KeyAuthorizationChallenge, validation: str) -> None:
        """Make ``validation`` reachable where the CA will look for it.

        Args:
            domain: Identifier being authorized (e.g. "example.com").
            chall: The challenge selected from the authorization.
            validation: Key authorization (HTTP-01) or TXT value (DNS-01).
        """

    def wait(self, domain: str, chall: challenges.KeyAuthorizationChallenge, validation: str) -> None:
        """Block until the presented validation is visible. No-op by default."""

    @abstractmethod
    def cleanup(self, domain: str, chall: challenges.KeyAuthorizationChallenge, validation: str) -> None:
        """Withdraw what ``present`` published."""
