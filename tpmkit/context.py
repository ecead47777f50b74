"""The TPM service context: decodes requests, runs commands, encodes responses."""

from __future__ import annotations

from typing import Any, Type, Union

from .buffers import InOutBuffer, SeparateBuffers, WriteOutOfBounds, write_bytes
from .drbg import Drbg, EntropySource, Writable
from .errors import TpmRcError
from .req_resp import RequestResponseCursor, RequestThenResponse

TPM_CC_GET_RANDOM = 0x17B

_RESPONSE_HEADER_SIZE = 10
_SESSION_TAG = 0x8001
_SUCCESS_STATUS = 0


class Crypto:
    """The cryptographic state of the service: a seeded DRBG and its entropy source."""

    def __init__(self, drbg_cls: Type[Drbg], entropy_cls: Type[EntropySource]) -> None:
        entropy = entropy_cls.instantiate()
        entropy_input = bytearray(drbg_cls.ENTROPY_SIZE)
        nonce = bytearray(drbg_cls.NONCE_SIZE)
        entropy.fill_entropy(entropy_input)
        entropy.fill_entropy(nonce)
        self.drbg = drbg_cls.instantiate(bytes(entropy_input), bytes(nonce), b"")
        self.entropy = entropy


class CommandHandler:
    """Runs individual TPM commands against the shared service state."""

    def __init__(self, drbg_cls: Type[Drbg], entropy_cls: Type[EntropySource]) -> None:
        self._drbg_cls = drbg_cls
        self.crypto = Crypto(drbg_cls, entropy_cls)

    def _fill_random(self, buffer: Writable) -> None:
        drbg = self.crypto.drbg
        if drbg.requires_reseeding():
            seed = bytearray(self._drbg_cls.ENTROPY_SIZE)
            self.crypto.entropy.fill_entropy(seed)
            drbg.reseed(bytes(seed), b"")
        drbg.fill_bytes(b"", buffer)

    def get_random(self, request: RequestThenResponse) -> None:
        """Handle TPM2_GetRandom: write the requested number of random bytes."""
        requested = request.read_be_u16()
        if requested is None:
            raise TpmRcError.COMMAND_SIZE
        response = request.into_response()
        try:
            response.write_callback(requested, self._fill_random)
        except WriteOutOfBounds:
            raise TpmRcError.MEMORY from None


class TpmContext:
    """Processes incoming TPM requests and produces their responses."""

    def __init__(self, drbg_cls: Type[Drbg], entropy_cls: Type[EntropySource]) -> None:
        self.handler = CommandHandler(drbg_cls, entropy_cls)

    def execute_command_separate(self, request: Any, response: Union[bytearray, memoryview]) -> int:
        """Run `request`, writing the response into `response`; return its length."""
        try:
            return self._execute_command(SeparateBuffers(request, response))
        except TpmRcError as err:
            return self._fill_error(response, err)

    def execute_command_in_place(self, in_out: Union[bytearray, memoryview], request_size: int) -> int:
        """Run the request at the front of `in_out` and overwrite it with the response.

        Returns the length of the response.
        """
        try:
            return self._execute_command(InOutBuffer(in_out, request_size))
        except TpmRcError as err:
            return self._fill_error(in_out, err)

    @staticmethod
    def _fill_error(response: Union[bytearray, memoryview], error: TpmRcError) -> int:
        try:
            write_bytes(response, 6, error.code.to_bytes(4, "big"))
        except WriteOutOfBounds:
            return 0
        return _RESPONSE_HEADER_SIZE

    def _execute_command(self, buffers: Any) -> int:
        request_size = len(buffers.request)
        cursor = RequestResponseCursor(buffers, _RESPONSE_HEADER_SIZE)
        request = cursor.request()

        if request.read_be_u16() is None:
            raise TpmRcError.COMMAND_SIZE
        size = request.read_be_u32()
        if size is None or size != request_size:
            raise TpmRcError.COMMAND_SIZE
        command_code = request.read_be_u32()
        if command_code is None:
            raise TpmRcError.COMMAND_SIZE

        if command_code == TPM_CC_GET_RANDOM:
            self.handler.get_random(request)
        else:
            raise TpmRcError.COMMAND_CODE

        response_size = cursor.last_response_byte_written
        response = cursor.response
        try:
            write_bytes(response, 0, _SESSION_TAG.to_bytes(2, "big"))
            write_bytes(response, 2, response_size.to_bytes(4, "big"))
            write_bytes(response, 6, _SUCCESS_STATUS.to_bytes(4, "big"))
        except WriteOutOfBounds:
            raise TpmRcError.MEMORY from None
        return response_size