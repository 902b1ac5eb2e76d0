from pydantic import BaseModel

class Msg(BaseModel):
    """Generic schema for message responses."""
    msg: str
