"""Tests for create-payment request validation."""

from app.engine.validation import check_payment_request, complete_student_info


class TestValidRequests:
    def test_numeric_amount(self):
        result = check_payment_request(1000, {"name": "Asha"})
        assert result.valid is True
        assert result.amount == 1000.0

    def test_numeric_string_amount(self):
        result = check_payment_request("250.50", {"name": "Asha"})
        assert result.valid is True
        assert result.amount == 250.5


class TestRejections:
    def test_missing_amount(self):
        assert not check_payment_request(None, {"name": "Asha"}).valid

    def test_empty_amount(self):
        assert not check_payment_request("", {"name": "Asha"}).valid

    def test_zero_amount(self):
        assert not check_payment_request(0, {"name": "Asha"}).valid

    def test_negative_amount(self):
        assert not check_payment_request(-5, {"name": "Asha"}).valid

    def test_non_numeric_amount(self):
        result = check_payment_request("abc", {"name": "Asha"})
        assert not result.valid
        assert "amount" in result.message

    def test_non_finite_amount(self):
        assert not check_payment_request("inf", {"name": "Asha"}).valid
        assert not check_payment_request(float("nan"), {"name": "Asha"}).valid

    def test_boolean_amount(self):
        assert not check_payment_request(True, {"name": "Asha"}).valid

    def test_missing_student_info(self):
        result = check_payment_request(100, None)
        assert not result.valid
        assert "name" in result.message

    def test_blank_student_name(self):
        assert not check_payment_request(100, {"name": "   "}).valid


class TestPriorityOrder:
    def test_amount_checked_first(self):
        """With both invalid, the amount message wins."""
        result = check_payment_request(0, None)
        assert "amount" in result.message


class TestStudentDefaults:
    def test_generated_id_and_email(self):
        student = complete_student_info({"name": "Asha Rao"})
        assert student.name == "Asha Rao"
        assert student.id.startswith("temp-")
        assert student.email == "asharao@example.com"

    def test_supplied_values_kept(self):
        student = complete_student_info({"name": "Asha", "id": "STU-9", "email": "a@school.test"})
        assert student.id == "STU-9"
        assert student.email == "a@school.test"
