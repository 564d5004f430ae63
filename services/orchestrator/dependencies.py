from fastapi import Depends, Request

from shared.config.database import AsyncSessionLocal
from services.email_service.service import send_email_event
from services.fraud_service.client import FraudCheckClient
from services.notification_service.realtime import HttpRealtimePublisher, RealtimePort
from services.tracking_service.conversions import ConversionTracker
from .fanout import FanoutDispatcher
from .task_queue import BackgroundTaskQueue


def get_task_queue(request: Request) -> BackgroundTaskQueue:
    return request.app.state.task_queue


def get_realtime_publisher() -> RealtimePort:
    return HttpRealtimePublisher()


def get_email_sender():
    return send_email_event


def get_fraud_client() -> FraudCheckClient:
    return FraudCheckClient()


def get_conversion_tracker() -> ConversionTracker:
    return ConversionTracker()


def get_session_factory():
    return AsyncSessionLocal


def get_fanout_dispatcher(
    queue: BackgroundTaskQueue = Depends(get_task_queue),
    publisher: RealtimePort = Depends(get_realtime_publisher),
    session_factory=Depends(get_session_factory),
    email_sender=Depends(get_email_sender),
    fraud_client: FraudCheckClient = Depends(get_fraud_client),
    tracker: ConversionTracker = Depends(get_conversion_tracker),
) -> FanoutDispatcher:
    return FanoutDispatcher(queue, publisher, session_factory, email_sender, fraud_client, tracker)
