from prometheus_client import Counter, Histogram

# Business Metrics
ecomm_checkout_total = Counter(
    "ecomm_checkout_total", 
    "Total checkouts processed", 
    ["status"] # Labels: 'success', 'rejected', 'failed'
)

ecomm_checkout_duration_seconds = Histogram(
    "ecomm_checkout_duration_seconds", 
    "Checkout duration in seconds"
)

ecomm_saga_compensation_total = Counter(
    "ecomm_saga_compensation_total", 
    "Total saga compensations triggered", 
    ["step_name"] # Labels: 'persist_order', etc.
)

ecomm_fanout_task_total = Counter(
    "ecomm_fanout_task_total",
    "Background fan-out tasks by outcome",
    ["task", "outcome"] # outcome='success', 'retry', 'dropped'
)

ecomm_email_send_total = Counter(
    "ecomm_email_send_total",
    "Transactional email attempts per provider",
    ["provider", "outcome"]
)
