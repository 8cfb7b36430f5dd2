"""
Unit tests for the command status state machine and the tagged request union.
"""

import pytest
from pydantic import ValidationError

from lockadmin.features.commands.schemas import (
    CommandStatus,
    RemoteUnlockRequest,
    SyncUidsRequest,
    WhitelistAddRequest,
    command_request_adapter,
    normalize_uid,
)


class TestCommandStatus:
    def test_pending_is_not_terminal(self):
        assert not CommandStatus.PENDING.is_terminal
        assert CommandStatus.DONE.is_terminal
        assert CommandStatus.FAILED.is_terminal

    @pytest.mark.parametrize("target", list(CommandStatus))
    def test_pending_may_move_anywhere(self, target):
        assert CommandStatus.PENDING.can_transition_to(target)

    @pytest.mark.parametrize("terminal", [CommandStatus.DONE, CommandStatus.FAILED])
    def test_terminal_states_never_revert(self, terminal):
        assert not terminal.can_transition_to(CommandStatus.PENDING)
        other = CommandStatus.FAILED if terminal is CommandStatus.DONE else CommandStatus.DONE
        assert not terminal.can_transition_to(other)
        assert terminal.can_transition_to(terminal)


class TestCommandRequest:
    def test_discriminates_on_type(self):
        request = command_request_adapter.validate_python({"type": "WHITELIST_ADD", "uid": "ab12"})
        assert isinstance(request, WhitelistAddRequest)
        assert request.uid == "AB12"

    def test_unlock_carries_nothing(self):
        request = command_request_adapter.validate_python({"type": "REMOTE_UNLOCK"})
        assert isinstance(request, RemoteUnlockRequest)
        with pytest.raises(ValidationError):
            command_request_adapter.validate_python({"type": "REMOTE_UNLOCK", "uid": "AB12"})

    def test_sync_uids_requires_both_lists(self):
        with pytest.raises(ValidationError):
            command_request_adapter.validate_python({"type": "SYNC_UIDS", "whitelist": ["a1"]})

    def test_sync_uids_drops_blanks_and_uppercases(self):
        request = command_request_adapter.validate_python(
            {"type": "SYNC_UIDS", "whitelist": ["a1", " ", ""], "blacklist": ["b2 "]}
        )
        assert isinstance(request, SyncUidsRequest)
        assert request.payload() == {"whitelist": ["A1"], "blacklist": ["B2"]}

    def test_blank_uid_is_rejected(self):
        with pytest.raises(ValidationError):
            command_request_adapter.validate_python({"type": "REMOVE_UID", "uid": "   "})

    def test_unknown_type_is_rejected(self):
        with pytest.raises(ValidationError):
            command_request_adapter.validate_python({"type": "REBOOT"})

    def test_normalize_uid(self):
        assert normalize_uid(" 04a1b2c3 ") == "04A1B2C3"
