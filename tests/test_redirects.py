"""Tests for beershop.services.redirects: exact-host https allow-list."""

import unittest

from beershop.core.errors import InvalidUrl, RedirectNotAllowed
from beershop.services.redirects import check_redirect_target

ALLOWED = ["www.budweiser.com", "www.heineken.com", "www.coronausa.com"]


class TestCheckRedirectTarget(unittest.TestCase):
    def test_allowed_targets_returned_unchanged(self) -> None:
        for url in (
            "https://www.budweiser.com",
            "https://www.heineken.com/en/beers?x=1",
            "https://WWW.CoronaUSA.com:443/",
        ):
            with self.subTest(url=url):
                self.assertEqual(check_redirect_target(url, ALLOWED), url)

    def test_refused_targets(self) -> None:
        for url in (
            "http://www.budweiser.com",
            "https://evil.example",
            "https://www.budweiser.com.evil.example/",
            "https://evilwww.budweiser.com/",
            "https://shop.www.heineken.com/",
            "https://user:pw@www.heineken.com/",
            "https://www.heineken.com@evil.example/",
            "https://www.heineken.com:8443/",
            "javascript:alert(1)",
            "//evil.example/",
        ):
            with self.subTest(url=url):
                with self.assertRaises((RedirectNotAllowed, InvalidUrl)):
                    check_redirect_target(url, ALLOWED)

    def test_scheme_relative_and_junk_are_invalid(self) -> None:
        for url in (None, "", "/relative/path", "not a url"):
            with self.subTest(url=url):
                with self.assertRaises(InvalidUrl):
                    check_redirect_target(url, ALLOWED)

    def test_bad_port_is_invalid(self) -> None:
        with self.assertRaises(InvalidUrl):
            check_redirect_target("https://www.heineken.com:notaport/", ALLOWED)


if __name__ == "__main__":
    unittest.main()
