from .setup import setup_observability, configure_logging, configure_request_context
from .metrics import (
    ecomm_checkout_total,
    ecomm_checkout_duration_seconds,
    ecomm_saga_compensation_total,
    ecomm_fanout_task_total,
    ecomm_email_send_total,
)
