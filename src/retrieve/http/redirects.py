"""
=============================================================================
REDIRECTS AND THE PERMANENT URI
=============================================================================

    ┌────────┬──────────────────────────────────────────────────────────┐
    │ Status │ What we do                                               │
    ├────────┼──────────────────────────────────────────────────────────┤
    │  300   │ nothing - Multiple Choices, the caller has to pick       │
    │  301   │ follow Location, same method       (PERMANENT)           │
    │  302   │ follow Location, same method       (TEMPORARY)           │
    │  303   │ follow Location as GET, no body    (SEE_OTHER)           │
    │  305   │ nothing - Use Proxy is not automated                     │
    │  307   │ follow Location, same method       (TEMPORARY)           │
    └────────┴──────────────────────────────────────────────────────────┘

=============================================================================
PERMANENT URI
=============================================================================

A resource's durable identity only moves through an UNBROKEN LEADING RUN
of 301s. Once a temporary redirect appears, later 301s no longer speak for
the original URI:

    A ─301─► B ─301─► C ─200       permanent URI: C
    A ─301─► B ─302─► C ─200       permanent URI: B
    A ─302─► B ─301─► C ─200       permanent URI: A (unchanged)

=============================================================================
"""

from enum import Enum
from typing import Callable, Iterator, List, Optional, Tuple, Union

from ..uri import URI
from .response import HTTPResponse


RedirectOption = Union[bool, Callable[[HTTPResponse], bool]]


class RedirectAction(Enum):
    PERMANENT = "permanent"
    TEMPORARY = "temporary"
    SEE_OTHER = "see_other"


REDIRECT_ACTIONS = {
    "301": RedirectAction.PERMANENT,
    "302": RedirectAction.TEMPORARY,
    "303": RedirectAction.SEE_OTHER,
    "307": RedirectAction.TEMPORARY,
}


def redirect_action(status: Optional[str]) -> Optional[RedirectAction]:
    """Action for a status code, or None if it is not followed (300, 305...)."""
    return REDIRECT_ACTIONS.get(status or "")


class RedirectPolicy:
    """
    Decides whether a redirect response is followed.

    The option is True (always), False (never) or a callable that gets
    the HTTPResponse and returns a truthy value to follow it.
    """

    def __init__(self, option: RedirectOption = True):
        if not isinstance(option, bool) and not callable(option):
            raise TypeError(
                "Expected redirect to be either True, False, or callable, "
                f"got {type(option).__name__}."
            )
        self.option = option

    def should_follow(self, response: HTTPResponse) -> bool:
        if isinstance(self.option, bool):
            return self.option
        return bool(self.option(response))


class RedirectChain:
    """
    The (uri-at-request, response) pairs seen during one open() call.
    """

    def __init__(self):
        self._entries: List[Tuple[URI, HTTPResponse]] = []

    def append(self, uri: URI, response: HTTPResponse) -> None:
        self._entries.append((uri, response))

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Tuple[URI, HTTPResponse]]:
        return iter(self._entries)

    def permanent_uri(self, start: URI) -> URI:
        """
        Collapse the leading run of 301s into a permanent URI.

        Args:
            start: The permanent URI before this chain.

        Returns:
            The target of the last 301 in the unbroken leading run, or
            start if the chain does not begin with a 301.
        """
        permanent = start
        for uri, response in self._entries:
            if response.status != "301" or not response.location:
                break
            permanent = uri.join(response.location)
        return permanent
