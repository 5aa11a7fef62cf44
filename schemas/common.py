from pydantic import BaseModel


class MessageResponse(BaseModel):
    """Plain acknowledgement"""
    message: str


class CountResponse(MessageResponse):
    """Acknowledgement for batch operations"""
    count: int
