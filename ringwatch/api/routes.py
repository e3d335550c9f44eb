import time
from typing import Dict
from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from loguru import logger

from ringwatch import generate_correlation_id, set_correlation_id
from ringwatch.api.models import AccountRiskResponse, AlertHistoryResponse, HealthResponse
from ringwatch.ingestion import parse_transactions_csv

router = APIRouter()


def _node_style(score: float) -> Dict:
    if score > 70:
        return {"color": "#ff4444", "size": 30}
    if score > 60:
        return {"color": "#ff8800", "size": 25}
    if score > 50:
        return {"color": "#ffaa00", "size": 22}
    return {"color": "#44aa44", "size": 20}


def _run_upload(pipeline, content: bytes):
    set_correlation_id(generate_correlation_id())
    transactions = parse_transactions_csv(content)
    return pipeline.detect(transactions)


@router.post("/upload")
async def upload_transactions(request: Request, file: UploadFile = File(...)):
    """
    Run detection over an uploaded transactions CSV.

    The latest-result slot is replaced only when the run completes.
    """
    pipeline = request.app.state.pipeline
    metrics = request.app.state.metrics

    try:
        content = await file.read()
        logger.info(f"Processing upload {file.filename} ({len(content)} bytes)")

        result = await run_in_threadpool(_run_upload, pipeline, content)
        request.app.state.result_store.set(result)

        logger.info(f"Processed {len(result.accounts)} accounts, {len(result.fraud_rings)} rings detected")
        return result.to_report()

    except ValueError as e:
        metrics.record_error("ValueError", "upload")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        metrics.record_error(type(e).__name__, "upload")
        logger.error(f"Failed to process upload: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    loaded = request.app.state.result_store.has_result
    return HealthResponse(status="healthy", file="loaded" if loaded else "none")


@router.get("/graph/data")
async def get_graph_data(request: Request):
    """Nodes styled by suspicion score and directed edges of the latest result."""
    result = request.app.state.result_store.get()
    if result is None:
        raise HTTPException(status_code=404, detail="No detection result available")

    nodes = []
    edges = []
    for account in result.accounts.values():
        node = {
            "id": account.account_id,
            "label": account.account_id,
            "suspicion_score": account.suspicion_score,
            "patterns": list(account.patterns),
            "ring_id": account.ring_id or "",
        }
        node.update(_node_style(account.suspicion_score))
        nodes.append(node)

        for receiver_id in sorted(account.outgoing_to):
            edges.append({"from": account.account_id, "to": receiver_id, "arrows": "to"})

    return {
        "nodes": nodes,
        "edges": edges,
        "timestamp": int(time.time() * 1000),
    }


@router.get("/accounts/{account_id}/risk", response_model=AccountRiskResponse)
async def get_account_risk(request: Request, account_id: str):
    result = request.app.state.result_store.get()
    if result is None:
        raise HTTPException(status_code=404, detail="No detection result available")

    account = result.get_account(account_id)
    if account is None:
        raise HTTPException(status_code=404, detail=f"Unknown account: {account_id}")

    ensemble_model = request.app.state.pipeline.ensemble_model
    breakdown = await run_in_threadpool(
        ensemble_model.predict_risk, account, list(result.accounts.values())
    )
    return AccountRiskResponse(
        account_id=account_id,
        suspicion_score=account.suspicion_score,
        **breakdown
    )


@router.get("/alerts/{target_id}", response_model=AlertHistoryResponse)
async def get_alert_history(request: Request, target_id: str):
    history = request.app.state.pipeline.get_alert_history(target_id)
    return AlertHistoryResponse(
        target_id=target_id,
        alerts=[alert.to_dict() for alert in history]
    )
