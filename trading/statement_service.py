"""End-to-end processing of a trading statement document."""
from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Sequence

from schemas.trading_statement import StatementResult, Transaction
from settings.config import Settings, settings as default_settings

from .aggregator import StatementAggregator
from .currency_converter import CurrencyConverter
from .errors import TradingStatementError
from .normalizer import TransactionNormalizer

logger = logging.getLogger("trading_statement.service")


class RowExtractor(Protocol):
    async def extract_rows(self, content: bytes, filename: Optional[str] = None) -> Sequence[object]:
        ...


class TradingStatementService:
    """Runs extraction, normalization and aggregation over one document.

    The stages run strictly in sequence and the first taxonomy error aborts the
    run; no partial report is returned.
    """

    def __init__(
        self,
        extractor: RowExtractor,
        normalizer: TransactionNormalizer,
        aggregator: StatementAggregator,
    ) -> None:
        self.extractor = extractor
        self.normalizer = normalizer
        self.aggregator = aggregator

    async def process(self, content: bytes, filename: Optional[str] = None) -> StatementResult:
        try:
            raw_rows = await self.extractor.extract_rows(content, filename)
            logger.info(
                "statement_rows_extracted",
                extra={"extra": {"filename": filename, "rows": len(raw_rows)}},
            )

            transactions: List[Transaction] = [
                self.normalizer.normalize(raw_row, index=index) for index, raw_row in enumerate(raw_rows)
            ]
            logger.info(
                "statement_normalized",
                extra={"extra": {"filename": filename, "transactions": len(transactions)}},
            )

            result = await self.aggregator.aggregate(transactions)
        except TradingStatementError as exc:
            logger.warning(
                "statement_failed",
                extra={"extra": {"filename": filename, "error": type(exc).__name__, "detail": str(exc)}},
            )
            raise

        logger.info(
            "statement_aggregated",
            extra={
                "extra": {
                    "filename": filename,
                    "sells": result.summary.total_sell_transactions,
                    "profit_bgn": round(result.total_profit_bgn, 2),
                    "loss_bgn": round(result.total_loss_bgn, 2),
                }
            },
        )
        return result


def build_default_service(config: Settings | None = None) -> TradingStatementService:
    """Wire the PDF extractor and Frankfurter rate provider into a service."""
    from pdf.trading_statement_extractor import PdfTradingStatementExtractor
    from services.frankfurter_rates import FrankfurterRateProvider

    config = config or default_settings
    converter = CurrencyConverter(FrankfurterRateProvider(config=config))
    return TradingStatementService(
        extractor=PdfTradingStatementExtractor(),
        normalizer=TransactionNormalizer(),
        aggregator=StatementAggregator(converter, max_concurrency=config.RATE_LOOKUP_CONCURRENCY),
    )


__all__ = ["RowExtractor", "TradingStatementService", "build_default_service"]
