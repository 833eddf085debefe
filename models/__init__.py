from .service import Service
from .driver import Driver, DriverService
from .order import Order
from .order_event import OrderEvent
