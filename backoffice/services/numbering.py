"""
Invoice numbering.
Sequential, collision-free invoice numbers drawn from a locked counter row.
"""

import asyncio
import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.config import settings
from backoffice.core.exceptions import InvoiceNumberError
from backoffice.models.invoice import InvoiceSequence


logger = logging.getLogger(__name__)


class InvoiceNumberService:
    """Service drawing invoice numbers."""

    def __init__(
        self,
        db: AsyncSession,
        max_attempts: int | None = None,
        retry_delay: float | None = None,
    ):
        self.db = db
        self.max_attempts = max_attempts or settings.INVOICE_NUMBER_MAX_ATTEMPTS
        self.retry_delay = (
            settings.INVOICE_NUMBER_RETRY_DELAY if retry_delay is None else retry_delay
        )

    @staticmethod
    def format_number(year: int, value: int) -> str:
        """Format: {prefix}-{year}-{sequence}"""
        return f"{settings.INVOICE_NUMBER_PREFIX}-{year}-{str(value).zfill(5)}"

    async def _draw(self, year: int) -> str:
        """Advance this year's counter under a row lock and format the number."""
        name = f"invoice-{year}"
        result = await self.db.execute(
            select(InvoiceSequence)
            .where(InvoiceSequence.name == name)
            .with_for_update()
        )
        sequence = result.scalar_one_or_none()

        if sequence is None:
            sequence = InvoiceSequence(name=name, current_value=0)
            self.db.add(sequence)

        sequence.current_value += 1
        await self.db.flush()

        return self.format_number(year, sequence.current_value)

    async def next_invoice_number(self) -> str:
        """
        Return the next invoice number.

        Lock and uniqueness conflicts are retried with a fixed delay; once
        the attempts are exhausted an InvoiceNumberError is raised.
        """
        year = date.today().year

        for attempt in range(1, self.max_attempts + 1):
            try:
                return await self._draw(year)
            except (IntegrityError, OperationalError) as e:
                await self.db.rollback()
                logger.warning(
                    f"Invoice number generation failed (attempt {attempt}/{self.max_attempts}): {e}"
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.retry_delay)

        raise InvoiceNumberError(self.max_attempts)
