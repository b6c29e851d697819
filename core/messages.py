"""
Prompt Messages
===============

Message, conversation history, few-shot demonstrations and the formatted
prompt handed to a generation backend.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

import pydantic
from pydantic import BaseModel, ConfigDict

from core.options import GenerateOptions


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str

    def as_dict(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}


class Example(BaseModel):
    """
    Few-shot demonstration: an input/output pair for a Signature.

    Example:
        Example(inputs={"review": "Great!"}, outputs={"sentiment": "positive"})
    """
    inputs: Dict[str, Any] = pydantic.Field(default_factory=dict)
    outputs: Dict[str, Any] = pydantic.Field(default_factory=dict)
    label: Optional[str] = None


class History:
    """
    Ordered conversation history for multi-turn interactions.

    When `max_size` is set only the most recent messages are kept.
    """

    def __init__(self, messages: Optional[List[Message]] = None, max_size: int = 0):
        self.max_size = max_size
        self._messages: List[Message] = []
        for message in messages or []:
            self.add(message)

    def add(self, message: Message):
        self._messages.append(message)
        if self.max_size > 0 and len(self._messages) > self.max_size:
            self._messages = self._messages[-self.max_size:]

    def add_user(self, content: str):
        self.add(Message(role=Role.USER, content=content))

    def add_assistant(self, content: str):
        self.add(Message(role=Role.ASSISTANT, content=content))

    def add_system(self, content: str):
        self.add(Message(role=Role.SYSTEM, content=content))

    @property
    def messages(self) -> List[Message]:
        return list(self._messages)

    def last(self, n: int) -> List[Message]:
        if n <= 0 or n >= len(self._messages):
            return list(self._messages)
        return self._messages[-n:]

    def clear(self):
        self._messages = []

    def clone(self) -> "History":
        return History(messages=self._messages, max_size=self.max_size)

    def is_empty(self) -> bool:
        return not self._messages

    def __len__(self) -> int:
        return len(self._messages)


class Prompt(BaseModel):
    """Ordered messages to send to a backend, with the options to send them with."""
    model_config = ConfigDict(frozen=True)

    messages: List[Message]
    options: GenerateOptions = pydantic.Field(default_factory=GenerateOptions)

    def as_dicts(self) -> List[Dict[str, str]]:
        return [m.as_dict() for m in self.messages]

    @property
    def last_content(self) -> str:
        return self.messages[-1].content if self.messages else ""
