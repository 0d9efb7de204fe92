"""
Message protocol between a host and the evolution worker.

Requests are dictionaries {type, payload}; events are dictionaries
{type, ...} holding only plain data (numbers, strings, lists, dicts).
"""

from enum import Enum

class RequestType(str, Enum):
    INIT               = "INIT"
    RESET              = "RESET"
    START              = "START"
    STOP               = "STOP"
    STEP               = "STEP"
    UPDATE_CONFIG      = "UPDATE_CONFIG"
    REQUEST_GENOME     = "REQUEST_GENOME"
    STATE              = "STATE"
    UPDATE_ENV_SIZE    = "UPDATE_ENV_SIZE"
    UPDATE_ENVIRONMENT = "UPDATE_ENVIRONMENT"

class EventType(str, Enum):
    INITED              = "INITED"
    RESET               = "RESET"
    STATUS              = "STATUS"
    PROGRESS            = "PROGRESS"
    GENERATION_COMPLETE = "GENERATION_COMPLETE"
    CONFIG_UPDATED      = "CONFIG_UPDATED"
    GENOME_DETAILS      = "GENOME_DETAILS"
    STATE               = "STATE"
    ENV_SIZE_UPDATED    = "ENV_SIZE_UPDATED"
    ENV_UPDATED         = "ENV_UPDATED"
    ERROR               = "ERROR"

STATUS_RUNNING = "RUNNING"
STATUS_PAUSED  = "PAUSED"

def normalize_type(message_type) -> str:
    """
    Message types are case-insensitive and may carry surrounding whitespace.
    """
    if isinstance(message_type, Enum):
        message_type = message_type.value
    return str(message_type or "").strip().upper()

def request(message_type, payload=None) -> dict:
    return {'type': normalize_type(message_type), 'payload': payload}

def event(event_type: EventType, **fields) -> dict:
    return {'type': event_type.value, **fields}

def error(message: str) -> dict:
    return event(EventType.ERROR, message=message)
