from typing import List
from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str
    file: str = Field(..., description="'loaded' once a detection result is available, otherwise 'none'")


class AccountRiskResponse(BaseModel):
    account_id: str
    suspicion_score: float
    ensemble_score: float = Field(..., description="Weighted ensemble score on a 0-100 scale")
    isolation_forest_score: float
    lof_score: float
    risk_predictor_score: float
    confidence: float = Field(..., description="Agreement between sub-models on a 0-100 scale")
    model_version: str


class AlertResponse(BaseModel):
    type: str
    message: str
    target_id: str
    severity: float
    timestamp: str


class AlertHistoryResponse(BaseModel):
    target_id: str
    alerts: List[AlertResponse]
