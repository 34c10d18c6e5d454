from datetime import datetime

from .base import BaseSchema


class DocumentOut(BaseSchema):
    id: str
    shipment_id: str
    file_name: str
    file_url: str
    file_type: str
    file_size: int
    uploaded_at: datetime | None = None
