"""
Pydantic schemas for API request/response models.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WebhookResponse(BaseModel):
    """Response schema for webhook processing."""

    model_config = ConfigDict(populate_by_name=True)

    received: bool = Field(..., description="Webhook was accepted")
    transaction_id: Optional[str] = Field(
        default=None, alias="transactionId", description="Canonical transaction id"
    )
    message: Optional[str] = Field(default=None, description="Status message")


class ProcessorMetricsSchema(BaseModel):
    """Aggregate metrics for one processor."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    volume_total: int = Field(..., ge=0, description="Stored transactions")
    revenue_sum: float = Field(..., ge=0, description="Sum of successful amounts")
    success_count: int = Field(..., ge=0, description="Successful transactions")
    declined_count: int = Field(..., ge=0, description="Declined transactions")


class TimeSeriesPointSchema(BaseModel):
    """Simulated hourly traffic for every processor."""

    model_config = ConfigDict(populate_by_name=True)

    time_label: str = Field(..., alias="timeLabel", description="Hour (ISO 8601)")
    stripe_value: int = Field(..., alias="stripeValue")
    bluefin_value: int = Field(..., alias="bluefinValue")
    worldpay_integrated_value: int = Field(..., alias="worldpay_integratedValue")
    gravity_value: int = Field(..., alias="gravityValue")
    covetrus_value: int = Field(..., alias="covetrusValue")


class StatisticsResponse(BaseModel):
    """Response schema for the processor comparison view."""

    metrics_data: Dict[str, ProcessorMetricsSchema] = Field(..., alias="metricsData")
    time_series_data: List[TimeSeriesPointSchema] = Field(
        ..., alias="timeSeriesData", min_length=24, max_length=24
    )

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "metricsData": {
                        "stripe": {
                            "volumeTotal": 2,
                            "revenueSum": 25.0,
                            "successCount": 1,
                            "declinedCount": 1,
                        }
                    },
                    "timeSeriesData": [
                        {
                            "timeLabel": "2025-01-06T10:00:00+00:00",
                            "stripeValue": 3120,
                            "bluefinValue": 2210,
                            "worldpay_integratedValue": 4010,
                            "gravityValue": 1890,
                            "covetrusValue": 2675,
                        }
                    ],
                }
            ]
        },
    )


class SystemStatusResponse(BaseModel):
    """Response schema for the system status endpoint."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    system_state: str = Field(..., description="Service state")
    checked_at: str = Field(..., description="Check timestamp (ISO 8601)")


class HealthCheckResponse(BaseModel):
    """Response schema for health checks."""

    status: str = Field(..., description="Overall health status (healthy/unhealthy)")
    checks: Optional[Dict[str, Any]] = Field(default=None, description="Individual service checks")
    message: Optional[str] = Field(default=None, description="Status message")
