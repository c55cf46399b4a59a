# thermogestion/observability/metrics.py
from fastapi import APIRouter
from starlette.responses import Response

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

router = APIRouter(tags=["observability"])

webhook_counter = Counter(
    "thermogestion_webhook_events_total",
    "Stripe webhook events by type and outcome",
    ["event_type", "outcome"],  # applied|no_match|ignored|error
)

quotes_priced_counter = Counter(
    "thermogestion_quotes_priced_total",
    "Quote pricing runs",
    ["source"],  # calculate|save
)

pdf_render_hist = Histogram(
    "thermogestion_pdf_render_seconds",
    "Document rendering time",
    ["document", "output"],  # quote|invoice|delivery_note, html|pdf
)


@router.get("/metrics", include_in_schema=True)
def metrics() -> Response:
    # Prometheus expects text/plain; version=0.0.4
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
