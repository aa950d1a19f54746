from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from bcal.api.public import router as public_router
from bcal.core.types import LedgerStorageError, MalformedLedgerError

app = FastAPI(title="bcal public api")
app.include_router(public_router)


@app.exception_handler(MalformedLedgerError)
async def _malformed_ledger(request: Request, exc: MalformedLedgerError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(LedgerStorageError)
async def _ledger_storage(request: Request, exc: LedgerStorageError) -> JSONResponse:
    return JSONResponse(status_code=503, content={"detail": str(exc)})
