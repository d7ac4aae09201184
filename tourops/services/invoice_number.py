import logging
import random

from flask import current_app, has_app_context

from tourops.models.invoice import InvoiceType
from tourops.services.errors import ResourceExhaustedError
from tourops.services.lookups import invoice_number_exists
from tourops.utils.timezone_utils import today_in_display_timezone

logger = logging.getLogger(__name__)

PREFIXES = {
    InvoiceType.STANDARD.value: "INV",
    InvoiceType.TRANSFER.value: "CIT",    # customer transfer
    InvoiceType.DRIVER_TIP.value: "CID",  # customer driver tip
}

DEFAULT_MAX_ATTEMPTS = 5


class InvoiceNumberGenerator:
    """
    Produces PREFIX-YYMMDD-NNNN numbers with a random 4-digit suffix.

    Uniqueness is checked against persisted invoice numbers through the
    `exists` oracle; after `max_attempts` collisions allocation gives up.
    The random source, the oracle and the clock are injectable so that
    collisions can be forced in tests.

    Random suffixes are not collision-free under concurrent creation. The
    unique constraint on invoice.invoice_number is what finally rejects a
    racing duplicate.
    """

    def __init__(self, exists=None, rng=None, today=None, max_attempts=None):
        self.exists = exists or invoice_number_exists
        self.rng = rng or random.Random()
        self.today = today or today_in_display_timezone
        if max_attempts is None:
            max_attempts = (
                current_app.config.get("INVOICE_NUMBER_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS)
                if has_app_context() else DEFAULT_MAX_ATTEMPTS
            )
        self.max_attempts = max_attempts

    @staticmethod
    def prefix_for(type_hint):
        try:
            return PREFIXES[type_hint]
        except KeyError:
            raise ValueError(f"Unknown invoice type: {type_hint}")

    def generate(self, type_hint=InvoiceType.STANDARD.value):
        prefix = self.prefix_for(type_hint)
        seq = self.rng.randint(0, 9999)
        return f"{prefix}-{self.today().strftime('%y%m%d')}-{seq:04d}"

    def allocate(self, type_hint=InvoiceType.STANDARD.value):
        for attempt in range(1, self.max_attempts + 1):
            candidate = self.generate(type_hint)
            if not self.exists(candidate):
                return candidate
            logger.warning(f"Invoice number collision on {candidate} (attempt {attempt}/{self.max_attempts})")

        logger.error(f"Invoice number generation exhausted after {self.max_attempts} attempts for {type_hint}")
        raise ResourceExhaustedError(
            "Failed to generate unique invoice number. Please try again.",
            attempts=self.max_attempts,
            invoice_type=type_hint,
        )
