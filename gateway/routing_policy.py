"""Direct-vs-proxy routing decision."""

from enum import Enum
from typing import Iterable, Optional


class RoutingDecision(str, Enum):
    DIRECT = "direct"
    PROXY = "proxy"


# Download tools that handle redirects and ranges themselves
DIRECT_UA_KEYWORDS = ("aria2", "wget", "curl", "idm", "openlist-direct")


def is_direct_user_agent(user_agent: Optional[str], keywords: Iterable[str] = DIRECT_UA_KEYWORDS) -> bool:
    """Case-insensitive substring match against the download tool list."""
    if not user_agent:
        return False
    lowered = user_agent.lower()
    return any(keyword in lowered for keyword in keywords)


def decide(user_agent: Optional[str], is_domestic_caller: bool) -> RoutingDecision:
    """
    Decide how to serve a resolved link.

    Download tools and every non-domestic caller get a redirect; proxying is
    reserved for domestic browsers and players.
    """
    if is_direct_user_agent(user_agent):
        return RoutingDecision.DIRECT
    if not is_domestic_caller:
        return RoutingDecision.DIRECT
    return RoutingDecision.PROXY
