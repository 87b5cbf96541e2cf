"""Tests for beershop.services.gates: fixed order and per-gate behaviour."""

import unittest
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

from beershop.core.errors import (
    Forbidden,
    InvalidCsrfToken,
    TooManyRequests,
    Unauthorized,
)
from beershop.services.gates import (
    CsrfGate,
    RequestContext,
    RoutePolicy,
    build_gate_chain,
    build_route_policies,
)
from beershop.services.rate_limit import RateLimiter, RateLimitRule
from beershop.services.sessions import ANONYMOUS, SessionContext, SessionManager, SessionState

FUTURE = datetime.now(UTC) + timedelta(days=1)
USER = SessionContext(
    state=SessionState.AUTHENTICATED,
    token="t",
    record_id=1,
    user_id=7,
    role="user",
    csrf_token="csrf-user",
    expires_at=FUTURE,
)
ADMIN = SessionContext(
    state=SessionState.AUTHENTICATED,
    token="a",
    record_id=2,
    user_id=8,
    role="admin",
    csrf_token="csrf-admin",
    expires_at=FUTURE,
)


def _ctx(session: SessionContext, method: str = "GET", path: str = "/v1/order", csrf: str | None = None):
    return RequestContext(method=method, path=path, client_id="198.51.100.1", session=session, csrf_submitted=csrf)


class TestChain(unittest.TestCase):
    def setUp(self) -> None:
        self.limiter = RateLimiter()
        self.chain = build_gate_chain(
            self.limiter, SessionManager(max_age=timedelta(days=2)), ["/v1", "/admin"]
        )

    def test_order_is_fixed(self) -> None:
        self.assertEqual(self.chain.names, ("rate_limit", "csrf", "authentication", "authorization"))

    def test_public_policy_passes_anonymous(self) -> None:
        self.chain.run(_ctx(ANONYMOUS, path="/"), RoutePolicy())

    def test_authenticated_policy_rejects_anonymous(self) -> None:
        with self.assertRaises(Unauthorized):
            self.chain.run(_ctx(ANONYMOUS), RoutePolicy(authenticated=True))

    def test_role_policy_rejects_other_role(self) -> None:
        policy = RoutePolicy(authenticated=True, role="admin")
        with self.assertRaises(Forbidden):
            self.chain.run(_ctx(USER), policy)
        self.chain.run(_ctx(ADMIN), policy)

    def test_csrf_checked_before_authentication(self) -> None:
        with self.assertRaises(InvalidCsrfToken):
            self.chain.run(_ctx(ANONYMOUS, method="POST", path="/v1/init"), RoutePolicy(authenticated=True))

    def test_rate_limit_checked_first(self) -> None:
        policy = RoutePolicy(authenticated=True, rate_limit=RateLimitRule("auth", "1/minute"))
        self.chain.run(_ctx(USER), policy)
        with self.assertRaises(TooManyRequests):
            self.chain.run(_ctx(ANONYMOUS, method="POST", path="/v1/init"), policy)

    def test_gate_stops_at_first_failure(self) -> None:
        later = MagicMock()
        later.name = "later"
        chain = build_gate_chain(self.limiter, SessionManager(max_age=timedelta(days=2)), ["/v1"])
        chain._gates = chain._gates + (later,)
        with self.assertRaises(Unauthorized):
            chain.run(_ctx(ANONYMOUS), RoutePolicy(authenticated=True))
        later.check.assert_not_called()


class TestCsrfGate(unittest.TestCase):
    def setUp(self) -> None:
        self.gate = CsrfGate(["/v1", "/admin"])

    def test_applies_only_to_state_changing_methods_under_prefixes(self) -> None:
        self.assertTrue(self.gate.applies_to("POST", "/v1/init"))
        self.assertTrue(self.gate.applies_to("DELETE", "/admin"))
        self.assertFalse(self.gate.applies_to("GET", "/v1/order"))
        self.assertFalse(self.gate.applies_to("POST", "/login"))
        self.assertFalse(self.gate.applies_to("POST", "/v1x/other"))

    def test_matching_token_passes(self) -> None:
        self.gate.check(_ctx(USER, method="POST", path="/v1/init", csrf="csrf-user"), RoutePolicy())

    def test_missing_or_wrong_token_rejected(self) -> None:
        for submitted in (None, "", "csrf-admin"):
            with self.assertRaises(InvalidCsrfToken):
                self.gate.check(_ctx(USER, method="POST", path="/v1/init", csrf=submitted), RoutePolicy())


class TestRoutePolicy(unittest.TestCase):
    def test_role_without_authentication_is_a_programming_error(self) -> None:
        with self.assertRaises(ValueError):
            RoutePolicy(role="admin")

    def test_named_policies(self) -> None:
        policies = build_route_policies("5/minute", "3/minute")
        self.assertEqual(policies["admin_upload"].role, "admin")
        self.assertEqual(policies["admin_upload"].rate_limit.limit, "3/minute")
        self.assertTrue(policies["user"].authenticated)
        self.assertIsNone(policies["public"].rate_limit)


if __name__ == "__main__":
    unittest.main()
