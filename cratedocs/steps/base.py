"""
Base step class for CrateDocs.

This module defines the base class for the steps of the per-package pipeline,
providing common logging, message handling and a consistent interface.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Union

from pydantic import BaseModel

from cratedocs.config import AppConfig
from cratedocs.schemas import MessageType, StepMessage


class BaseStep(ABC):
    """Base class for all steps of the package pipeline.

    A step reads the workflow state and returns a dictionary of updates. Errors
    are logged and re-raised; the orchestrator decides what they mean for the
    package.
    """

    def __init__(self, config: AppConfig):
        """Initialize the base step.

        Args:
            config: Application configuration
        """
        self.config = config
        self.logger = logging.getLogger(f"cratedocs.steps.{self.__class__.__name__}")

    def get_state_value(self, state: Union[Dict[str, Any], BaseModel], key: str, default: Any = None) -> Any:
        """Get a value from the state, handling both dictionary and Pydantic model states.

        Args:
            state: Current workflow state (either a dictionary or a Pydantic model)
            key: Key to get from the state
            default: Default value to return if key is not found

        Returns:
            Any: Value from the state, or default if not found
        """
        if isinstance(state, dict):
            value = state.get(key, default)
        else:
            value = getattr(state, key, default)
        return value if value is not None else default

    def require_state_value(self, state: Union[Dict[str, Any], BaseModel], key: str) -> Any:
        """Like ``get_state_value`` but raise if an earlier step did not set ``key``."""
        value = self.get_state_value(state, key)
        if value is None:
            raise ValueError(f"{self.name} needs '{key}' in the workflow state")
        return value

    @property
    def name(self) -> str:
        """Get the step's name.

        Returns:
            str: The step's name
        """
        return self.__class__.__name__

    @abstractmethod
    async def _execute(self, state: Union[Dict[str, Any], BaseModel]) -> Dict[str, Any]:
        """Perform the step's task.

        Args:
            state: Current workflow state (either a dictionary or a Pydantic model)

        Returns:
            Dict[str, Any]: State updates, optionally with a "messages" list
        """
        pass

    async def execute(self, state: Union[Dict[str, Any], BaseModel]) -> Dict[str, Any]:
        """Run the step with logging and message bookkeeping.

        Args:
            state: Current workflow state (either a dictionary or a Pydantic model)

        Returns:
            Dict[str, Any]: State updates including the step's messages
        """
        messages: List[StepMessage] = [self._message(MessageType.INFO, f"{self.name} started")]
        self.logger.debug("Starting execution")

        try:
            updates = await self._execute(state)
        except Exception as e:
            self.logger.debug(f"Execution failed: {e}")
            raise

        messages.extend(updates.pop("messages", []))
        messages.append(self._message(MessageType.SUCCESS, f"{self.name} completed"))
        updates["messages"] = messages

        self.logger.debug("Completed execution")
        return updates

    def _message(self, message_type: MessageType, content: str) -> StepMessage:
        """Create a message attributed to this step.

        Args:
            message_type: Type of message
            content: Message content
        """
        return StepMessage(
            step_name=self.name,
            message_type=message_type,
            content=content,
            timestamp=datetime.now().isoformat(),
        )
