"""Service layer exports for the crane booking engine."""

from .capacity import CapacityValidator
from .conflicts import Conflict, ConflictDetector, intervals_overlap
from .lifecycle import ReservationLifecycle
from .messaging import AMQPMessageBus, InMemoryMessageBus, MessageBus, MessageEnvelope, MQTTMessageBus, create_message_bus
from .notifications import MessageBusNotifier, NotificationDispatcher, Notifier
from .rescheduling import ReschedulingEngine
from .scheduling import SchedulingService
from .slots import SlotGenerator
from .waiting_list import WaitingListMatcher

__all__ = [
	"CapacityValidator",
	"Conflict",
	"ConflictDetector",
	"intervals_overlap",
	"ReservationLifecycle",
	"ReschedulingEngine",
	"SchedulingService",
	"SlotGenerator",
	"WaitingListMatcher",
	"Notifier",
	"MessageBusNotifier",
	"NotificationDispatcher",
	"MessageBus",
	"MessageEnvelope",
	"InMemoryMessageBus",
	"MQTTMessageBus",
	"AMQPMessageBus",
	"create_message_bus",
]
