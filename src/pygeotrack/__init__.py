"""pygeotrack - Background location sample collection with durable history."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pygeotrack")
except PackageNotFoundError:
    __version__ = "0+local"
from pygeotrack._constants import DEFAULT_INTERVAL_MS, INTERVAL_PRESETS_MS
from pygeotrack.acquisition import FixProvider, HttpFixProvider
from pygeotrack.config import TrackerConfig
from pygeotrack.controller import LifecycleController
from pygeotrack.exceptions import (
    AcquisitionError,
    AcquisitionTimeout,
    AcquisitionUnavailable,
    ConcurrentStartRejected,
    InvalidFixError,
    StorageFault,
    TrackerConfigError,
    TrackerError,
)
from pygeotrack.feed import Broadcast, FeedPublisher, Subscription
from pygeotrack.loop import CollectionLoop, LoopState
from pygeotrack.models import (
    CollectionState,
    CommandAction,
    ControlCommand,
    LocationFix,
    LocationSample,
    NewSample,
)
from pygeotrack.registrar import BackgroundRegistrar, NullRegistrar
from pygeotrack.store import MemorySampleStore, SampleStore, SqliteSampleStore, open_store
from pygeotrack.tracker import LocationTracker
from pygeotrack.validation import validate_fix

__all__ = [
    "__version__",
    "AcquisitionError",
    "AcquisitionTimeout",
    "AcquisitionUnavailable",
    "BackgroundRegistrar",
    "Broadcast",
    "CollectionLoop",
    "CollectionState",
    "CommandAction",
    "ConcurrentStartRejected",
    "ControlCommand",
    "DEFAULT_INTERVAL_MS",
    "FeedPublisher",
    "FixProvider",
    "HttpFixProvider",
    "INTERVAL_PRESETS_MS",
    "InvalidFixError",
    "LifecycleController",
    "LocationFix",
    "LocationSample",
    "LocationTracker",
    "LoopState",
    "MemorySampleStore",
    "NewSample",
    "NullRegistrar",
    "SampleStore",
    "SqliteSampleStore",
    "StorageFault",
    "Subscription",
    "TrackerConfig",
    "TrackerConfigError",
    "TrackerError",
    "open_store",
    "validate_fix",
]
