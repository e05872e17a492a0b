import logging
from datetime import date
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from database import SessionLocal, init_db, session_scope
from ledger import BudgetNotFound, TransactionFilters, TransactionNotFound
from models import TransactionType
from schemas import (
    Budget,
    BudgetIn,
    BudgetPatch,
    BudgetView,
    Dashboard,
    InsightsReport,
    MonthlyTrend,
    SpendingByCategory,
    Transaction,
    TransactionIn,
    TransactionPatch,
)
from services import (
    BudgetService,
    InsightsService,
    MetricsService,
    TransactionService,
)
from storage import LedgerRepository, StorageError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="ExpenseFlow")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@app.on_event("startup")
def startup_event():
    init_db()
    with session_scope() as session:
        ledger = LedgerRepository(session).load()
    logger.info(
        f"startup: transactions={len(ledger.transactions)} budgets={len(ledger.budgets)}"
    )


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error(f"storage_error: path={request.url.path} detail={exc}")
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.get("/api/expenses", response_model=list[Transaction])
def list_expenses(
    type: Optional[TransactionType] = Query(None),
    category: Optional[str] = Query(None),
    q: Optional[str] = Query(None),
    tag: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    filters = TransactionFilters(
        type=type, category=category or None, query=q or None, tag=tag or None
    )
    return TransactionService(db).list(filters)


@app.post("/api/expenses", response_model=Transaction, status_code=201)
def create_expense(data: TransactionIn, db: Session = Depends(get_db)):
    return TransactionService(db).create(data)


@app.get("/api/expenses/date-range", response_model=list[Transaction])
def expenses_by_date_range(start: date, end: date, db: Session = Depends(get_db)):
    try:
        return TransactionService(db).by_date_range(start, end)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.get("/api/expenses/category/{category}", response_model=list[Transaction])
def expenses_by_category(category: str, db: Session = Depends(get_db)):
    return TransactionService(db).by_category(category)


@app.get("/api/expenses/{transaction_id}", response_model=Transaction)
def get_expense(transaction_id: str, db: Session = Depends(get_db)):
    try:
        return TransactionService(db).get(transaction_id)
    except TransactionNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.put("/api/expenses/{transaction_id}", response_model=Transaction)
def update_expense(
    transaction_id: str, patch: TransactionPatch, db: Session = Depends(get_db)
):
    try:
        return TransactionService(db).update(transaction_id, patch)
    except TransactionNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.delete("/api/expenses/{transaction_id}", status_code=204)
def delete_expense(transaction_id: str, db: Session = Depends(get_db)):
    try:
        TransactionService(db).delete(transaction_id)
    except TransactionNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return Response(status_code=204)


@app.get("/api/budgets", response_model=list[Budget])
def list_budgets(db: Session = Depends(get_db)):
    return BudgetService(db).list_all()


@app.post("/api/budgets", response_model=Budget, status_code=201)
def upsert_budget(data: BudgetIn, db: Session = Depends(get_db)):
    return BudgetService(db).upsert(data)


@app.get("/api/budgets/status", response_model=list[BudgetView])
def budget_status(db: Session = Depends(get_db)):
    return BudgetService(db).progress()


@app.put("/api/budgets/{category}", response_model=Budget)
def update_budget(category: str, patch: BudgetPatch, db: Session = Depends(get_db)):
    try:
        return BudgetService(db).update(category, patch)
    except BudgetNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.delete("/api/budgets/{category}", status_code=204)
def delete_budget(category: str, db: Session = Depends(get_db)):
    try:
        BudgetService(db).delete(category)
    except BudgetNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return Response(status_code=204)


@app.get("/api/analytics/spending-by-category", response_model=SpendingByCategory)
def spending_by_category(request: Request, db: Session = Depends(get_db)):
    try:
        return MetricsService(db).spending_by_category(
            request.query_params.get("period"),
            request.query_params.get("start"),
            request.query_params.get("end"),
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.get("/api/analytics/monthly-trends", response_model=list[MonthlyTrend])
def monthly_trends(
    months: int = Query(6, ge=1, le=36), db: Session = Depends(get_db)
):
    return MetricsService(db).monthly_trends(months)


@app.get("/api/analytics/budget-comparison", response_model=list[BudgetView])
def budget_comparison(db: Session = Depends(get_db)):
    return BudgetService(db).comparison()


@app.get("/api/dashboard", response_model=Dashboard)
def dashboard(db: Session = Depends(get_db)):
    return MetricsService(db).dashboard()


@app.get("/api/insights", response_model=InsightsReport)
def insights(db: Session = Depends(get_db)):
    return InsightsService(db).report()


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8080, reload=False)


if __name__ == "__main__":
    main()
