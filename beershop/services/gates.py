"""Policy gate chain applied to every routed request.

Gates run in one fixed order: rate limit, CSRF, authentication,
authorization. A route's ``RoutePolicy`` only switches gates on or off for
that route; it can never reorder them. The first failing gate raises and the
request ends there.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from beershop.core.errors import InvalidCsrfToken
from beershop.core.security import tokens_match
from beershop.services.rate_limit import RateLimiter, RateLimitRule
from beershop.services.sessions import SessionContext, SessionManager

logger = logging.getLogger(__name__)

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


@dataclass(frozen=True)
class RoutePolicy:
    """What a route requires. Leave everything unset for public routes."""

    authenticated: bool = False
    role: str | None = None
    rate_limit: RateLimitRule | None = None

    def __post_init__(self) -> None:
        if self.role is not None and not self.authenticated:
            raise ValueError("A role requirement implies authentication")


@dataclass(frozen=True)
class RequestContext:
    """Everything the gates may look at. Gates never read business data."""

    method: str
    path: str
    client_id: str
    session: SessionContext
    csrf_submitted: str | None = None


class Gate:
    """One interceptor. check() returns None to pass or raises a ShopError."""

    name = "gate"

    def check(self, ctx: RequestContext, policy: RoutePolicy) -> None:
        raise NotImplementedError


class RateLimitGate(Gate):
    name = "rate_limit"

    def __init__(self, limiter: RateLimiter) -> None:
        self.limiter = limiter

    def check(self, ctx: RequestContext, policy: RoutePolicy) -> None:
        if policy.rate_limit is not None:
            self.limiter.hit(policy.rate_limit, ctx.client_id)


class CsrfGate(Gate):
    """Double-submit check for state-changing requests under the protected prefixes."""

    name = "csrf"

    def __init__(self, protected_prefixes: Sequence[str]) -> None:
        self.protected_prefixes = tuple(p.rstrip("/") for p in protected_prefixes)

    def applies_to(self, method: str, path: str) -> bool:
        if method.upper() in SAFE_METHODS:
            return False
        return any(path == p or path.startswith(p + "/") for p in self.protected_prefixes)

    def check(self, ctx: RequestContext, policy: RoutePolicy) -> None:
        if not self.applies_to(ctx.method, ctx.path):
            return
        if not tokens_match(ctx.csrf_submitted, ctx.session.csrf_token):
            logger.warning(
                "CSRF token rejected",
                extra={"path": ctx.path, "client": ctx.client_id},
            )
            raise InvalidCsrfToken()


class AuthenticationGate(Gate):
    name = "authentication"

    def __init__(self, sessions: SessionManager) -> None:
        self.sessions = sessions

    def check(self, ctx: RequestContext, policy: RoutePolicy) -> None:
        if policy.authenticated:
            self.sessions.require_authenticated(ctx.session)


class AuthorizationGate(Gate):
    name = "authorization"

    def __init__(self, sessions: SessionManager) -> None:
        self.sessions = sessions

    def check(self, ctx: RequestContext, policy: RoutePolicy) -> None:
        if policy.role is not None:
            self.sessions.require_role(ctx.session, policy.role)


class PolicyGateChain:
    """Immutable ordered list of gates, built once at start-up."""

    def __init__(self, gates: Sequence[Gate]) -> None:
        self._gates = tuple(gates)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(g.name for g in self._gates)

    def run(self, ctx: RequestContext, policy: RoutePolicy) -> RequestContext:
        for gate in self._gates:
            gate.check(ctx, policy)
        return ctx


def build_gate_chain(
    limiter: RateLimiter,
    sessions: SessionManager,
    csrf_protected_prefixes: Sequence[str],
) -> PolicyGateChain:
    return PolicyGateChain(
        [
            RateLimitGate(limiter),
            CsrfGate(csrf_protected_prefixes),
            AuthenticationGate(sessions),
            AuthorizationGate(sessions),
        ]
    )


def build_route_policies(
    auth_limit: str, upload_limit: str, admin_role: str = "admin"
) -> dict[str, RoutePolicy]:
    """Named policies routes refer to; rate-limit values come from configuration."""
    return {
        "public": RoutePolicy(),
        "auth_attempt": RoutePolicy(rate_limit=RateLimitRule("auth", auth_limit)),
        "user": RoutePolicy(authenticated=True),
        "admin": RoutePolicy(authenticated=True, role=admin_role),
        "admin_upload": RoutePolicy(
            authenticated=True,
            role=admin_role,
            rate_limit=RateLimitRule("upload", upload_limit),
        ),
    }
