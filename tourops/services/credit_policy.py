import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from tourops.extensions import db
from tourops.models.agent import AgentCreditTerms
from tourops.models.invoice import OUTSTANDING_STATUSES
from tourops.schemas.finance_schema import CreditTermsSchema, load_payload
from tourops.services.errors import ServiceError, PolicyViolationError, InvalidStateError
from tourops.services.lookups import find_active_agent, sum_outstanding_invoice_totals
from tourops.services.money import round2, to_decimal
from tourops.utils.timezone_utils import utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreditDecision:
    approved: bool
    requested: Decimal
    limit: Decimal = Decimal("0.00")
    outstanding: Decimal = Decimal("0.00")
    available: Optional[Decimal] = None
    reason: Optional[str] = None


class CreditPolicy:
    @staticmethod
    def _terms_for(agent_id, lock):
        query = AgentCreditTerms.query.filter_by(agent_id=agent_id)
        if lock:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def check_limit(agent_id, proposed_total, lock=False):
        """
        Evaluate a proposed invoice total against the agent's credit limit.

        With lock=True the credit-terms row is read FOR UPDATE, so the caller
        must be inside the transaction that will insert the invoice.
        """
        requested = round2(proposed_total)
        terms = CreditPolicy._terms_for(agent_id, lock)
        if terms is None or to_decimal(terms.credit_limit) <= 0:
            return CreditDecision(approved=True, requested=requested)

        limit = round2(terms.credit_limit)
        outstanding = round2(sum_outstanding_invoice_totals(agent_id, OUTSTANDING_STATUSES))
        available = round2(limit - outstanding)

        if requested > available:
            reason = (
                f"Credit limit exceeded. Limit: {limit}, Outstanding: {outstanding}, "
                f"Available: {available}, Requested: {requested}"
            )
            return CreditDecision(
                approved=False, requested=requested, limit=limit,
                outstanding=outstanding, available=available, reason=reason,
            )
        return CreditDecision(
            approved=True, requested=requested, limit=limit,
            outstanding=outstanding, available=available,
        )

    @staticmethod
    def enforce(agent_id, proposed_total):
        """
        Lock the agent's credit terms, check the limit and mark the check.

        Touching the terms row bumps its version, so a concurrent creation for
        the same agent fails at flush instead of overshooting the limit.
        """
        decision = CreditPolicy.check_limit(agent_id, proposed_total, lock=True)
        if not decision.approved:
            logger.warning(f"Credit check rejected for agent {agent_id}: {decision.reason}")
            raise PolicyViolationError(
                decision.reason,
                limit=decision.limit,
                outstanding=decision.outstanding,
                available=decision.available,
                requested=decision.requested,
            )
        terms = CreditPolicy._terms_for(agent_id, lock=False)
        if terms is not None:
            terms.exposure_checked_at = utc_now()
        return decision

    @staticmethod
    def get_credit_status(agent_id):
        agent = find_active_agent(agent_id)
        terms = agent.credit_terms
        credit_limit = round2(terms.credit_limit) if terms else Decimal("0.00")
        credit_days = terms.credit_days if terms else 0
        outstanding = round2(sum_outstanding_invoice_totals(agent_id, OUTSTANDING_STATUSES))
        available = max(Decimal("0.00"), round2(credit_limit - outstanding))
        if credit_limit > 0:
            utilization = (outstanding / credit_limit * 100).quantize(Decimal("0.1"))
        else:
            utilization = Decimal("0.0")
        return {
            'agent_id': agent.id,
            'agent_name': agent.legal_name,
            'credit_limit': credit_limit,
            'credit_days': credit_days,
            'outstanding_balance': outstanding,
            'available_credit': available,
            'utilization_percent': utilization,
        }

    @staticmethod
    def update_credit_terms(agent_id, payload):
        data = load_payload(CreditTermsSchema(), payload)
        try:
            find_active_agent(agent_id)
            terms = AgentCreditTerms.query.filter_by(agent_id=agent_id).with_for_update().first()
            if terms is None:
                terms = AgentCreditTerms(agent_id=agent_id)
                db.session.add(terms)
            terms.credit_limit = data['credit_limit']
            terms.credit_days = data['credit_days']
            db.session.commit()
            logger.info(f"Credit terms for agent {agent_id} set to limit={terms.credit_limit}, days={terms.credit_days}")
            return terms
        except ServiceError:
            db.session.rollback()
            raise
        except StaleDataError:
            db.session.rollback()
            raise InvalidStateError("Credit terms were modified concurrently. Please retry.", agent_id=agent_id)
        except SQLAlchemyError as e:
            db.session.rollback()
            logging.error(f"Error updating credit terms: {e}", exc_info=True)
            raise ServiceError("Could not update credit terms. Please try again later.")
