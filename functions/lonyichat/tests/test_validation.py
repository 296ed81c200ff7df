import unittest

from lonyichat.validation import parse_age, validate_profile

VALID_PROFILE = {
    "userId": "u1",
    "name": "Jo Ann",
    "email": "a@b.com",
    "phone": "1234567890",
    "age": 20,
    "country": "US",
}


class ValidateProfileTests(unittest.TestCase):
    def test_minimal_payload_is_valid(self):
        self.assertEqual(validate_profile(VALID_PROFILE), [])

    def test_underage_is_rejected(self):
        errors = validate_profile({**VALID_PROFILE, "age": 17})
        self.assertEqual(errors, ["Age is required and must be 18 or older."])

    def test_short_phone_is_rejected(self):
        errors = validate_profile({**VALID_PROFILE, "phone": "123456789"})
        self.assertEqual(errors, ["Phone Number must be at least 10 digits."])

    def test_email_without_at_is_rejected(self):
        errors = validate_profile({**VALID_PROFILE, "email": "a.b.com"})
        self.assertEqual(errors, ["A valid Email is required."])

    def test_empty_payload_reports_every_required_field(self):
        self.assertEqual(len(validate_profile({})), 6)

    def test_user_id_must_be_non_blank_string(self):
        for bad in ({"x": 1}, 42, ["u1"], "   "):
            errors = validate_profile({**VALID_PROFILE, "userId": bad})
            self.assertEqual(errors, ["userId (Firebase UID) is required."], bad)

    def test_whitespace_only_name_is_rejected(self):
        errors = validate_profile({**VALID_PROFILE, "name": "   "})
        self.assertEqual(len(errors), 1)

    def test_photo_url_must_be_string(self):
        errors = validate_profile({**VALID_PROFILE, "photoUrl": 12})
        self.assertEqual(errors, ["Photo URL must be a string."])
        self.assertEqual(
            validate_profile({**VALID_PROFILE, "photoUrl": "https://x/p.png"}), []
        )


class ParseAgeTests(unittest.TestCase):
    def test_accepts_int_and_numeric_strings(self):
        self.assertEqual(parse_age(20), 20)
        self.assertEqual(parse_age("20"), 20)
        self.assertEqual(parse_age("21 years"), 21)
        self.assertEqual(parse_age(20.9), 20)

    def test_rejects_non_numbers(self):
        self.assertIsNone(parse_age("twenty"))
        self.assertIsNone(parse_age(None))
        self.assertIsNone(parse_age(True))


if __name__ == "__main__":
    unittest.main()
