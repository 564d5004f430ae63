import structlog

from shared.errors import CheckoutError
from shared.observability import ecomm_saga_compensation_total

logger = structlog.get_logger(__name__)

class SagaStep:
    def __init__(self, name, action, compensation=None):
        self.name = name
        self.action = action
        self.compensation = compensation

class SagaOrchestrator:
    def __init__(self):
        self.steps = []

    def add_step(self, name: str, action, compensation=None):
        """Builder pattern to add a step and its rollback compensation."""
        self.steps.append(SagaStep(name, action, compensation))
        return self

    async def execute(self, ctx: dict):
        """Executes steps sequentially. Any exception rolls back the steps that ran,
        including the failing one, then re-raises."""
        executed_steps = []
        for step in self.steps:
            executed_steps.append(step)
            try:
                await step.action(ctx)
            except CheckoutError as e:
                logger.warning("Checkout rejected", step=step.name, reason=e.kind, message=e.message)
                await self._rollback(executed_steps, ctx)
                raise
            except Exception as e:
                logger.error("Saga execution failed", step=step.name, error=str(e))
                await self._rollback(executed_steps, ctx)
                raise
        return ctx

    async def _rollback(self, executed_steps: list, ctx: dict):
        """Executes compensations in reverse order. Wraps each in a try/except."""
        for step in reversed(executed_steps):
            if step.compensation:
                try:
                    await step.compensation(ctx)
                    logger.info("Compensation applied", step=step.name)
                    ecomm_saga_compensation_total.labels(step_name=step.name).inc()
                except Exception as ce:
                    # A failing compensation must not block the others
                    logger.critical("Compensation failed, manual intervention may be required", step=step.name, error=str(ce))
