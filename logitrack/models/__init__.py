from .users import User  # noqa: F401
from .access_request import AccessRequest  # noqa: F401
from .shipment import Shipment, ShipmentTimeline  # noqa: F401
from .document import Document  # noqa: F401
