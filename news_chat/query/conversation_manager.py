"""
Conversation Manager for Multi-turn Dialogues

Keeps in-memory conversation sessions for the CLI. The retrieval pipeline
only reads history; this manager is the one place that appends to it.
"""

import uuid
import logging
from datetime import datetime
from typing import List, Dict, Optional

from ..models import ConversationTurn

logger = logging.getLogger(__name__)


class ConversationManager:
    """
    Manages conversation sessions for multi-turn dialogues.

    Features:
    - Session creation and management
    - Conversation history tracking with sliding window
    - Support for multiple concurrent sessions
    """

    def __init__(self, max_history_turns: int = 10):
        """
        Initialize the conversation manager.

        Args:
            max_history_turns: Maximum number of question/answer turns to keep
        """
        if max_history_turns < 1:
            raise ValueError(f"max_history_turns must be at least 1, got {max_history_turns}")
        self.max_history_turns = max_history_turns

        # Session storage: {session_id: [turns]}
        self.sessions: Dict[str, List[ConversationTurn]] = {}

    def create_session(self) -> str:
        """
        Create a new conversation session.

        Returns:
            Unique session ID
        """
        session_id = str(uuid.uuid4())
        self.sessions[session_id] = []

        logger.info(f"Created new session: {session_id}")
        return session_id

    def has_session(self, session_id: str) -> bool:
        return session_id in self.sessions

    def add_turn(self, session_id: str, question: str, answer: str) -> None:
        """
        Add a conversation turn (question + answer) to a session.

        Args:
            session_id: Session identifier
            question: User's question
            answer: Assistant's answer
        """
        if session_id not in self.sessions:
            logger.warning(f"Session {session_id} not found, creating new session")
            self.sessions[session_id] = []

        timestamp = datetime.now().isoformat()
        self.sessions[session_id].append(ConversationTurn('user', question, timestamp))
        self.sessions[session_id].append(ConversationTurn('assistant', answer, timestamp))

        # Keep last N turns = 2N messages
        max_messages = self.max_history_turns * 2
        if len(self.sessions[session_id]) > max_messages:
            self.sessions[session_id] = self.sessions[session_id][-max_messages:]

        logger.debug(f"Added turn to session {session_id}")

    def get_turns(
        self,
        session_id: str,
        max_turns: Optional[int] = None
    ) -> List[ConversationTurn]:
        """
        Get the messages of a session, oldest first.

        Args:
            session_id: Session identifier
            max_turns: Maximum number of question/answer turns to return

        Returns:
            Copy of the session's messages (empty for an unknown session)
        """
        history = list(self.sessions.get(session_id, []))
        if max_turns is not None:
            history = history[-max_turns * 2:] if max_turns > 0 else []
        return history

    def get_history(
        self,
        session_id: str,
        max_turns: Optional[int] = None
    ) -> List[Dict[str, str]]:
        """Get session messages as role/content/timestamp dictionaries."""
        return [
            {'role': turn.role, 'content': turn.content, 'timestamp': turn.timestamp}
            for turn in self.get_turns(session_id, max_turns)
        ]

    def clear_session(self, session_id: str) -> None:
        """
        Clear all history for a session.

        Args:
            session_id: Session identifier
        """
        if session_id in self.sessions:
            self.sessions[session_id] = []
            logger.info(f"Cleared session {session_id}")
