"""Unit tests for beershop.services.validation and the declared request models."""

import unittest

from beershop.core.errors import ValidationError
from beershop.schemas.requests import (
    BEER_INIT,
    BEER_PAGE,
    BEER_PICTURE,
    NEW_BEER,
    REGISTER,
    SEARCH_BY,
    STATUS_BRAND,
    XML_BEER,
)
from beershop.services.validation import Invalid, Valid, field_path, validate, validated


def _fields(result: Invalid) -> set[str]:
    return {e.field for e in result.errors}


class TestValidateIsPure(unittest.TestCase):
    def test_valid_payload_returns_parsed_model(self) -> None:
        result = validate({"name": "  Lager  ", "price": 4.5}, NEW_BEER)
        self.assertIsInstance(result, Valid)
        self.assertEqual(result.value.name, "Lager")
        self.assertEqual(result.value.price, 4.5)
        self.assertIsNone(result.value.picture)

    def test_invalid_payload_returns_every_error_without_raising(self) -> None:
        result = validate({"name": "L", "price": -1}, NEW_BEER)
        self.assertIsInstance(result, Invalid)
        self.assertEqual(_fields(result), {"name", "price"})

    def test_validated_raises_with_details(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            validated({}, NEW_BEER)
        body = ctx.exception.to_body()
        self.assertEqual(body["error"], "Validation error")
        self.assertEqual({d["field"] for d in body["details"]}, {"name", "price"})

    def test_error_reason_never_echoes_input(self) -> None:
        result = validate({"name": "Lager", "price": "<script>"}, NEW_BEER)
        self.assertIsInstance(result, Invalid)
        self.assertNotIn("<script>", " ".join(e.reason for e in result.errors))


class TestFieldPath(unittest.TestCase):
    def test_nested_location(self) -> None:
        self.assertEqual(field_path(("beers", 1, "price")), "beers[1].price")

    def test_empty_location_is_body(self) -> None:
        self.assertEqual(field_path(()), "body")


class TestUnknownFields(unittest.TestCase):
    def test_unknown_field_rejected(self) -> None:
        result = validate(
            {"name": "Ada", "email": "ada@example.com", "password": "long-enough", "role": "admin"},
            REGISTER,
        )
        self.assertIsInstance(result, Invalid)
        self.assertEqual(_fields(result), {"role"})

    def test_unknown_query_parameter_rejected(self) -> None:
        result = validate({"id": "7", "debug": "1"}, BEER_PAGE)
        self.assertIsInstance(result, Invalid)
        self.assertEqual(_fields(result), {"debug"})

    def test_non_object_payload_rejected(self) -> None:
        result = validate(["not", "an", "object"], NEW_BEER)
        self.assertIsInstance(result, Invalid)
        self.assertEqual(_fields(result), {"body"})


class TestTypes(unittest.TestCase):
    def test_bool_is_not_a_number(self) -> None:
        self.assertIsInstance(validate({"name": "Lager", "price": True}, NEW_BEER), Invalid)

    def test_numeric_string_not_coerced_from_json(self) -> None:
        self.assertIsInstance(validate({"name": "Lager", "price": "4.5"}, NEW_BEER), Invalid)

    def test_query_model_converts_strings(self) -> None:
        result = validate({"id": "7"}, BEER_PAGE)
        self.assertIsInstance(result, Valid)
        self.assertEqual(result.value.id, 7)

    def test_xml_text_converted_to_price(self) -> None:
        result = validate({"name": "Pilsner", "price": "3.75"}, XML_BEER)
        self.assertIsInstance(result, Valid)
        self.assertEqual(result.value.price, 3.75)

    def test_sql_fragment_is_not_an_integer(self) -> None:
        self.assertIsInstance(validate({"query": "1 OR 1=1"}, SEARCH_BY["id"]), Invalid)

    def test_id_beyond_database_range(self) -> None:
        self.assertIsInstance(validate({"query": "9" * 30}, SEARCH_BY["id"]), Invalid)

    def test_nan_rejected(self) -> None:
        self.assertIsInstance(validate({"name": "Lager", "price": float("nan")}, NEW_BEER), Invalid)
        self.assertIsInstance(validate({"query": "inf"}, SEARCH_BY["price"]), Invalid)

    def test_nul_in_string_rejected(self) -> None:
        self.assertIsInstance(validate({"brand": "bud\x00weiser"}, STATUS_BRAND), Invalid)
        self.assertIsInstance(validate({"picture": "a.png\x00.txt"}, BEER_PICTURE), Invalid)

    def test_pattern_is_full_match(self) -> None:
        self.assertIsInstance(validate({"brand": "heineken"}, STATUS_BRAND), Valid)
        self.assertIsInstance(validate({"brand": "heineken; rm -rf /"}, STATUS_BRAND), Invalid)

    def test_picture_name_pattern(self) -> None:
        self.assertIsInstance(validate({"name": "Lager", "price": 1, "picture": "Lager.PNG"}, NEW_BEER), Valid)
        result = validate({"name": "Lager", "price": 1, "picture": "../x.png"}, NEW_BEER)
        self.assertEqual(_fields(result), {"picture"})

    def test_password_is_not_stripped(self) -> None:
        result = validate(
            {"name": "Ada", "email": "ada@example.com", "password": "  spaced pass  "}, REGISTER
        )
        self.assertEqual(result.value.password, "  spaced pass  ")

    def test_profile_pic_must_be_a_bare_image_name(self) -> None:
        account = {"name": "Ada", "email": "ada@example.com", "password": "long-enough"}
        self.assertIsInstance(validate({**account, "profile_pic": "ada.jpg"}, REGISTER), Valid)
        result = validate({**account, "profile_pic": "../../etc/passwd"}, REGISTER)
        self.assertEqual(_fields(result), {"profile_pic"})


class TestBatches(unittest.TestCase):
    def test_batch_within_bound(self) -> None:
        beers = [{"name": f"Beer {i}", "price": 1 + i} for i in range(50)]
        result = validate({"beers": beers}, BEER_INIT)
        self.assertIsInstance(result, Valid)
        self.assertEqual(len(result.value.beers), 50)

    def test_batch_over_bound_rejected_on_array(self) -> None:
        beers = [{"name": "x", "price": 1}] * 51
        result = validate({"beers": beers}, BEER_INIT)
        self.assertIsInstance(result, Invalid)
        self.assertEqual(_fields(result), {"beers"})

    def test_nested_item_errors_carry_index(self) -> None:
        result = validate({"beers": [{"name": "ok", "price": 1}, {"name": "bad", "price": 0}]}, BEER_INIT)
        self.assertIsInstance(result, Invalid)
        self.assertEqual(_fields(result), {"beers[1].price"})

    def test_nested_object_rejects_unknown_keys(self) -> None:
        result = validate({"beers": [{"name": "ok", "price": 1, "__class__": "x"}]}, BEER_INIT)
        self.assertIsInstance(result, Invalid)
        self.assertEqual(_fields(result), {"beers[0].__class__"})

    def test_serialized_function_is_not_a_batch(self) -> None:
        result = validate({"beers": "_$$ND_FUNC$$_function(){}()"}, BEER_INIT)
        self.assertIsInstance(result, Invalid)
        self.assertEqual(_fields(result), {"beers"})


if __name__ == "__main__":
    unittest.main()
