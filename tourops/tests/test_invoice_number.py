import random
import re
from datetime import date

import pytest

from tourops.models.invoice import Invoice, InvoiceType
from tourops.services.errors import ResourceExhaustedError
from tourops.services.invoice_number import InvoiceNumberGenerator

NUMBER_FORMAT = re.compile(r"^[A-Z]{3}-\d{6}-\d{4}$")


def fixed_day():
    return date(2024, 3, 15)


class TestInvoiceNumberGenerator:

    def test_format_and_prefixes(self):
        """Test that numbers follow PREFIX-YYMMDD-NNNN with the prefix for each type"""
        generator = InvoiceNumberGenerator(exists=lambda c: False, rng=random.Random(7), today=fixed_day)
        for type_hint, prefix in [
            (InvoiceType.STANDARD.value, "INV"),
            (InvoiceType.TRANSFER.value, "CIT"),
            (InvoiceType.DRIVER_TIP.value, "CID"),
        ]:
            for _ in range(50):
                number = generator.allocate(type_hint)
                assert NUMBER_FORMAT.match(number)
                assert number.startswith(f"{prefix}-240315-")

    def test_suffix_is_zero_padded(self):
        """Test that the random suffix is zero padded to four digits"""
        class LowRandom:
            def randint(self, a, b):
                return 7

        generator = InvoiceNumberGenerator(exists=lambda c: False, rng=LowRandom(), today=fixed_day)
        assert generator.generate() == "INV-240315-0007"

    def test_skips_colliding_candidates(self):
        """Test that allocate skips candidates that already exist"""
        taken = {"INV-240315-0001", "INV-240315-0002"}
        suffixes = iter([1, 2, 3])

        class SequenceRandom:
            def randint(self, a, b):
                return next(suffixes)

        generator = InvoiceNumberGenerator(exists=taken.__contains__, rng=SequenceRandom(), today=fixed_day)
        assert generator.allocate() == "INV-240315-0003"

    def test_gives_up_after_five_collisions(self):
        """Test that allocate raises ResourceExhaustedError after five collisions"""
        tried = []

        def always_taken(candidate):
            tried.append(candidate)
            return True

        generator = InvoiceNumberGenerator(exists=always_taken, rng=random.Random(1), today=fixed_day)
        with pytest.raises(ResourceExhaustedError) as exc_info:
            generator.allocate(InvoiceType.TRANSFER.value)

        assert len(tried) == 5
        assert exc_info.value.details["attempts"] == 5
        assert "unique invoice number" in exc_info.value.message

    def test_unknown_type_rejected(self):
        """Test that an unknown invoice type has no prefix"""
        with pytest.raises(ValueError):
            InvoiceNumberGenerator.prefix_for("CREDIT_NOTE")

    def test_attempt_bound_comes_from_config(self, app):
        """Test that max attempts is read from INVOICE_NUMBER_MAX_ATTEMPTS"""
        app.config["INVOICE_NUMBER_MAX_ATTEMPTS"] = 3
        generator = InvoiceNumberGenerator(exists=lambda c: True, today=fixed_day)
        assert generator.max_attempts == 3

    def test_default_oracle_checks_stored_numbers(self, app, db, factory):
        """Test that the default uniqueness check sees persisted invoice numbers"""
        agent = factory.agent()
        db.session.add(Invoice(
            invoice_number="INV-240315-0042",
            agent_id=agent.id,
            invoice_date=fixed_day(),
            due_date=fixed_day(),
        ))
        db.session.commit()

        suffixes = iter([42, 43])

        class SequenceRandom:
            def randint(self, a, b):
                return next(suffixes)

        generator = InvoiceNumberGenerator(rng=SequenceRandom(), today=fixed_day)
        assert generator.allocate() == "INV-240315-0043"
