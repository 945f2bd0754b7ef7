"""
Growthline Web Server

FastAPI-based web server for the Growthline growth analytics engine.
"""

import logging
import sys
from datetime import date, datetime
from functools import lru_cache
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

# Setup paths
project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from src.analytics import (
    GrowthAnalytics,
    InvalidMeasurement,
    InvalidReferenceData,
    ReferenceDataMissing,
)
from src.config import get_config
from src.models import (
    Gender,
    GrowthComparison,
    IdealValues,
    Measurement,
    MeasurementSnapshot,
    Metric,
    PercentileResult,
    ReferenceCurvePoint,
)

logger = logging.getLogger(__name__)


# Create FastAPI app
app = FastAPI(
    title="Growthline",
    description="Growthline - Pediatric Growth Analytics API",
    version="0.1.0",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache()
def get_analytics() -> GrowthAnalytics:
    """Shared analytics service; the reference store is built on first use."""
    return GrowthAnalytics()


# Request models
class ComparisonRequest(BaseModel):
    """Request model for a growth comparison."""
    gender: Gender
    birth_date: date
    as_of: Optional[date] = Field(None, description="Consultation date (default: today)")
    measurements: list[Measurement] = Field(..., description="Patient measurements, any order")


class HistoryRequest(BaseModel):
    """Request model for growth history."""
    gender: Gender
    birth_date: Optional[date] = Field(None, description="Derive ages from this date when given")
    measurements: list[Measurement]


class PercentileRequest(BaseModel):
    """Request model for a single percentile lookup."""
    gender: Gender
    metric: Metric
    age_months: int = Field(..., ge=0, description="Age in months")
    value: float = Field(..., gt=0, description="Measured value in kg or cm")


def _config_error(e: Exception) -> HTTPException:
    """Reference data problems are server configuration errors."""
    logger.error("Reference data configuration error: %s", e)
    return HTTPException(status_code=500, detail=f"Reference data configuration error: {e}")


# Routes
@app.get("/api/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}


@app.post("/api/growth/comparison", response_model=GrowthComparison)
def growth_comparison(
    request: ComparisonRequest,
    analytics: GrowthAnalytics = Depends(get_analytics),
):
    """
    Compare the latest measurement with the previous one and the ideal.

    The current measurement is the latest one taken on or before as_of.
    """
    try:
        return analytics.get_comparison(
            request.gender, request.birth_date, request.measurements, request.as_of
        )
    except InvalidMeasurement as e:
        raise HTTPException(status_code=422, detail=str(e))
    except (ReferenceDataMissing, InvalidReferenceData) as e:
        raise _config_error(e)


@app.post("/api/growth/history", response_model=list[MeasurementSnapshot])
def growth_history(
    request: HistoryRequest,
    analytics: GrowthAnalytics = Depends(get_analytics),
):
    """Get percentile ranks for every measurement, ordered by age."""
    try:
        return analytics.get_history(request.gender, request.measurements, request.birth_date)
    except InvalidMeasurement as e:
        raise HTTPException(status_code=422, detail=str(e))
    except (ReferenceDataMissing, InvalidReferenceData) as e:
        raise _config_error(e)


@app.get("/api/growth/curves/{gender}/{metric}", response_model=list[ReferenceCurvePoint])
def growth_curves(
    gender: Gender,
    metric: Metric,
    max_age_months: int = Query(60, ge=0, description="Last age to include"),
    analytics: GrowthAnalytics = Depends(get_analytics),
):
    """Get percentile band rows for charting."""
    try:
        return analytics.get_curve_series(gender, metric, max_age_months)
    except (ReferenceDataMissing, InvalidReferenceData) as e:
        raise _config_error(e)


@app.get("/api/growth/ideal/{gender}/{age_months}", response_model=IdealValues)
def growth_ideal(
    gender: Gender,
    age_months: int,
    analytics: GrowthAnalytics = Depends(get_analytics),
):
    """Get the ideal (p50) weight and height for an age."""
    try:
        return analytics.get_ideal(gender, age_months)
    except InvalidMeasurement as e:
        raise HTTPException(status_code=422, detail=str(e))
    except (ReferenceDataMissing, InvalidReferenceData) as e:
        raise _config_error(e)


@app.post("/api/growth/percentile", response_model=PercentileResult)
def growth_percentile(
    request: PercentileRequest,
    analytics: GrowthAnalytics = Depends(get_analytics),
):
    """Rank a single measured value."""
    try:
        return analytics.percentile_for_value(
            request.gender, request.metric, request.age_months, request.value
        )
    except InvalidMeasurement as e:
        raise HTTPException(status_code=422, detail=str(e))
    except (ReferenceDataMissing, InvalidReferenceData) as e:
        raise _config_error(e)


def run_server(host: str = "0.0.0.0", port: int = 8000):
    """Run the server."""
    import uvicorn
    logging.basicConfig(
        level=get_config().log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
