"""Prometheus metrics for spot allocation."""

from prometheus_client import Counter, Gauge, Histogram, CollectorRegistry, generate_latest

# Create a custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

# Allocation requests by operation and outcome ("ok" or an error code)
ALLOCATION_REQUESTS = Counter(
    "parking_allocation_requests_total",
    "Total number of allocation requests handled by the coordinator",
    ["operation", "outcome"],
    registry=REGISTRY,
)

# Time spent waiting for per-spot locks (in seconds)
LOCK_WAIT = Histogram(
    "parking_spot_lock_wait_seconds",
    "Time spent waiting for exclusive access to a spot",
    buckets=(0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0),
    registry=REGISTRY,
)

# Reservation lifecycle changes
RESERVATION_TRANSITIONS = Counter(
    "parking_reservation_transitions_total",
    "Total number of reservation status changes",
    ["from_status", "to_status"],
    registry=REGISTRY,
)

# Total spots gauges
TOTAL_SPOTS = Gauge(
    "parking_spots_total",
    "Total number of parking spots",
    registry=REGISTRY,
)

AVAILABLE_SPOTS = Gauge(
    "parking_spots_available",
    "Number of available parking spots",
    registry=REGISTRY,
)

OCCUPIED_SPOTS = Gauge(
    "parking_spots_occupied",
    "Number of occupied parking spots",
    registry=REGISTRY,
)


def record_request(operation: str, outcome: str) -> None:
    """Record one coordinator request."""
    ALLOCATION_REQUESTS.labels(operation=operation, outcome=outcome).inc()


def record_lock_wait(wait_seconds: float) -> None:
    """Record how long a caller waited for spot locks."""
    LOCK_WAIT.observe(wait_seconds)


def record_transition(from_status: str, to_status: str) -> None:
    """Record a reservation status change."""
    RESERVATION_TRANSITIONS.labels(from_status=from_status, to_status=to_status).inc()


def update_spot_counts(total: int, available: int, occupied: int) -> None:
    """Update overall spot count gauges."""
    TOTAL_SPOTS.set(total)
    AVAILABLE_SPOTS.set(available)
    OCCUPIED_SPOTS.set(occupied)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest(REGISTRY)
