from request_hub.core.config import settings
from request_hub.repositories.data_store import RequestStore, build_backend
from request_hub.services.lifecycle_service import RequestLifecycleEngine
from request_hub.services.notification_service import Notifier
from request_hub.services.scheduler import SweepScheduler


store = RequestStore(
    backend=build_backend(settings.storage_backend, settings.data_dir),
    key=settings.storage_key,
)
notifier = Notifier()

lifecycle_engine = RequestLifecycleEngine(store=store, notifier=notifier)
sweep_scheduler = SweepScheduler(
    engine=lifecycle_engine,
    interval_seconds=settings.sweep_interval_seconds,
)
