from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from trading.errors import DocumentUnreadable, MalformedRow, RateUnavailable
from trading.statement_service import TradingStatementService, build_default_service

router = APIRouter(tags=["trading-statements"])


@lru_cache(maxsize=1)
def get_statement_service() -> TradingStatementService:
    # Process-wide; the rate cache lives here
    return build_default_service()


@router.post("/trading-statements")
async def trading_statement_route(
    file: UploadFile = File(...),
    service: TradingStatementService = Depends(get_statement_service),
) -> Dict[str, Any]:
    """Upload a broker trading statement PDF and get its BGN/EUR P&L report."""
    if file is None or not (file.filename or "").strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file provided")

    filename = file.filename
    content_type = (file.content_type or "").lower()
    if "pdf" not in content_type and not filename.lower().endswith(".pdf"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only PDF files are supported")

    content = await file.read()
    try:
        result = await service.process(content, filename=filename)
    except DocumentUnreadable as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except MalformedRow as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except RateUnavailable as e:
        # UnknownCurrency included
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    return result.model_dump(mode="json", by_alias=True)
