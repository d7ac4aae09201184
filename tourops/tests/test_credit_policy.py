from decimal import Decimal

import pytest

from tourops.models.agent import AgentCreditTerms
from tourops.models.invoice import Invoice
from tourops.schemas.fee_schema import AgentCreditTermsSchema
from tourops.services.credit_policy import CreditPolicy
from tourops.services.errors import InvalidInputError, NotFoundError, PolicyViolationError
from tourops.services.invoice_service import InvoiceService
from tourops.services.payment_service import PaymentService


@pytest.fixture
def agent_at_800(factory, invoice_payload):
    """Agent with a 1000 limit and 800 outstanding on one draft invoice."""
    agent = factory.agent(credit_limit=1000)
    InvoiceService.create_invoice(invoice_payload(agent.id, "800.00"))
    return agent


class TestCheckLimit:

    def test_accepts_within_available(self, agent_at_800):
        """Test that a request below the available credit is approved"""
        decision = CreditPolicy.check_limit(agent_at_800.id, Decimal("150"))
        assert decision.approved
        assert decision.available == Decimal("200.00")

    def test_rejects_above_available(self, agent_at_800):
        """Test that a request above the available credit is refused with a full reason"""
        decision = CreditPolicy.check_limit(agent_at_800.id, Decimal("250"))
        assert not decision.approved
        assert decision.available == Decimal("200.00")
        assert decision.outstanding == Decimal("800.00")
        assert "Available: 200.00" in decision.reason
        assert "Requested: 250.00" in decision.reason
        assert "Limit: 1000.00" in decision.reason

    def test_exact_available_is_accepted(self, agent_at_800):
        """Test that a request equal to the available credit is approved"""
        assert CreditPolicy.check_limit(agent_at_800.id, Decimal("200.00")).approved

    def test_no_terms_means_no_limit(self, factory):
        """Test that an agent without credit terms is never limited"""
        agent = factory.agent()
        assert CreditPolicy.check_limit(agent.id, Decimal("1000000")).approved

    def test_zero_limit_disables_check(self, factory):
        """Test that a zero credit limit disables the check"""
        agent = factory.agent(credit_limit=0)
        assert CreditPolicy.check_limit(agent.id, Decimal("1000000")).approved

    def test_cancelled_and_paid_invoices_release_exposure(self, factory, invoice_payload):
        """Test that cancelled and paid invoices do not count as outstanding"""
        agent = factory.agent(credit_limit=1000)
        cancelled = InvoiceService.create_invoice(invoice_payload(agent.id, "600.00"))
        InvoiceService.cancel_invoice(cancelled.id)
        paid = InvoiceService.create_invoice(invoice_payload(agent.id, "300.00"))
        PaymentService.apply_payment(paid.id, Decimal("300.00"), "CASH", paid.invoice_date)

        decision = CreditPolicy.check_limit(agent.id, Decimal("1000"))
        assert decision.approved
        assert decision.outstanding == Decimal("0.00")

    def test_partially_paid_invoice_still_counts(self, factory, invoice_payload):
        """Test that a partially paid invoice counts its full total as outstanding"""
        agent = factory.agent(credit_limit=1000)
        invoice = InvoiceService.create_invoice(invoice_payload(agent.id, "500.00"))
        InvoiceService.post_invoice(invoice.id)
        PaymentService.apply_payment(invoice.id, Decimal("100.00"), "CASH", invoice.invoice_date)

        decision = CreditPolicy.check_limit(agent.id, Decimal("600"))
        assert not decision.approved
        assert decision.outstanding == Decimal("500.00")


class TestCreditEnforcedOnCreate:

    def test_rejected_creation_persists_nothing(self, agent_at_800, invoice_payload):
        """Test that an invoice over the limit is refused and nothing is written"""
        with pytest.raises(PolicyViolationError) as exc_info:
            InvoiceService.create_invoice(invoice_payload(agent_at_800.id, "250.00"))

        assert exc_info.value.details["available"] == Decimal("200.00")
        assert exc_info.value.details["requested"] == Decimal("250.00")
        assert Invoice.query.count() == 1

    def test_creation_bumps_terms_version(self, factory, invoice_payload):
        """Test that a credit-checked creation bumps the terms version"""
        agent = factory.agent(credit_limit=1000)
        terms = AgentCreditTerms.query.filter_by(agent_id=agent.id).one()
        version_before = terms.version

        InvoiceService.create_invoice(invoice_payload(agent.id, "10.00"))

        terms = AgentCreditTerms.query.filter_by(agent_id=agent.id).one()
        assert terms.version == version_before + 1
        assert terms.exposure_checked_at is not None


class TestCreditStatus:

    def test_reports_utilization(self, agent_at_800):
        """Test that credit status reports limit, outstanding, available and utilization"""
        status = CreditPolicy.get_credit_status(agent_at_800.id)
        assert status["credit_limit"] == Decimal("1000.00")
        assert status["outstanding_balance"] == Decimal("800.00")
        assert status["available_credit"] == Decimal("200.00")
        assert status["utilization_percent"] == Decimal("80.0")

    def test_without_terms(self, factory):
        """Test that credit status is all zeros for an agent without terms"""
        agent = factory.agent()
        status = CreditPolicy.get_credit_status(agent.id)
        assert status["credit_limit"] == Decimal("0.00")
        assert status["available_credit"] == Decimal("0.00")
        assert status["utilization_percent"] == Decimal("0.0")

    def test_unknown_agent(self, app):
        """Test that credit status for an unknown agent raises NotFoundError"""
        with pytest.raises(NotFoundError):
            CreditPolicy.get_credit_status(999)


class TestUpdateCreditTerms:

    def test_creates_then_updates(self, factory):
        """Test that credit terms are created once and then updated in place"""
        agent = factory.agent()
        terms = CreditPolicy.update_credit_terms(agent.id, {"credit_limit": "5000", "credit_days": 45})
        assert terms.credit_limit == Decimal("5000.00")

        terms = CreditPolicy.update_credit_terms(agent.id, {"credit_limit": "7500.50", "credit_days": 60})
        assert AgentCreditTerms.query.filter_by(agent_id=agent.id).count() == 1
        dumped = AgentCreditTermsSchema().dump(terms)
        assert dumped["credit_limit"] == "7500.50"
        assert dumped["credit_days"] == 60
        assert "version" not in dumped

    def test_negative_limit_rejected(self, factory):
        """Test that a negative credit limit is rejected"""
        agent = factory.agent()
        with pytest.raises(InvalidInputError) as exc_info:
            CreditPolicy.update_credit_terms(agent.id, {"credit_limit": "-1", "credit_days": 30})
        assert "credit_limit" in exc_info.value.errors

    def test_unknown_agent(self, app):
        """Test that updating terms for an unknown agent raises NotFoundError"""
        with pytest.raises(NotFoundError):
            CreditPolicy.update_credit_terms(42, {"credit_limit": "100", "credit_days": 30})
