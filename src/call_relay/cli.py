"""
Command-line entry points for the call relay.

``call-relay-server`` runs the signaling relay; ``call-relay-client`` runs an
interactive session client that reads commands from the console.
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from call_relay.config import RelayConfig, RelayConfigManager
from call_relay.infrastructure import setup_logging
from call_relay.infrastructure.exceptions import (
    CallRelayError,
    ConfigurationError,
    PreconditionViolation,
)

CLIENT_HELP = """Commands:
  audio        enable the local microphone
  call <id>    call another client
  end          end the current call
  status       show connection and call state
  quit         disconnect and exit"""


def _load_config(env_file: str) -> RelayConfig:
    return RelayConfigManager(env_file_path=env_file).get_config()


# ----------------------------------------------------------------------
# Server
# ----------------------------------------------------------------------


def build_server_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run the call signaling relay server"
    )
    parser.add_argument("--host", help="Interface to bind (default: RELAY_HOST)")
    parser.add_argument("--port", type=int, help="Port to listen on (default: RELAY_PORT)")
    parser.add_argument(
        "--env-file", default=".env", help="Environment file to load (default: .env)"
    )
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    return parser


def server_main(argv: Optional[List[str]] = None) -> int:
    """Entry point for call-relay-server."""
    args = build_server_parser().parse_args(argv)

    try:
        config = _load_config(args.env_file)
        if args.host:
            config.host = args.host
        if args.port is not None:
            config.port = args.port
        if args.log_level:
            config.log_level = args.log_level
        config.validate()
    except ConfigurationError as e:
        print(f"❌ Invalid configuration: {e}", file=sys.stderr)
        return 1

    from call_relay.websockets.server.relay_server import main as relay_main

    # The server module configures its logger on import; apply the override after
    setup_logging(component_name="signaling_relay", log_level=config.log_level)

    try:
        asyncio.run(relay_main(config))
    except KeyboardInterrupt:
        print("\nRelay stopped.")
    return 0


# ----------------------------------------------------------------------
# Client
# ----------------------------------------------------------------------


class ConsoleClient:
    """
    Interactive console front end for a WebSocketClient.

    A single task reads stdin. Each line either answers a pending consent
    prompt or is queued as a command.
    """

    def __init__(self, config: RelayConfig, logger) -> None:
        # aiortc is only needed once the client actually runs
        from call_relay.media.aiortc_backend import MicrophoneSource, create_peer_connection
        from call_relay.websockets.client import WebSocketClient

        self.config = config
        self.logger = logger
        self._commands: asyncio.Queue = asyncio.Queue()
        self._prompt_future: Optional[asyncio.Future] = None
        self._reader_task: Optional[asyncio.Task] = None

        self.client = WebSocketClient(
            server_url=config.server_url,
            logger=logger,
            peer_factory=create_peer_connection,
            media_factory=lambda: MicrophoneSource(
                device=config.audio_device, format=config.audio_format
            ),
            consent_prompt=self.ask_consent,
            on_status=self.show,
        )

    @staticmethod
    def show(message: str) -> None:
        print(f"* {message}", flush=True)

    async def ask_consent(self, from_id: str) -> bool:
        print(f"Incoming call from {from_id}. Accept? [y/N] ", end="", flush=True)
        self._prompt_future = asyncio.get_running_loop().create_future()
        try:
            answer = await self._prompt_future
        finally:
            self._prompt_future = None
        return answer is not None and answer.strip().lower() in ("y", "yes")

    async def _read_stdin(self) -> None:
        while True:
            line = await asyncio.to_thread(sys.stdin.readline)
            if not line:
                line = None
            if self._prompt_future is not None and not self._prompt_future.done():
                self._prompt_future.set_result(line)
            else:
                await self._commands.put(line)
            # Stop reading once the user leaves so no thread stays blocked on stdin
            if line is None or line.strip().lower() in ("quit", "exit"):
                return

    async def run(self) -> int:
        connected = await self.client.connect(
            max_retries=self.config.connect_retries,
            retry_delay=self.config.retry_delay,
        )
        if not connected:
            print(f"❌ Could not connect to {self.config.server_url}", file=sys.stderr)
            return 1

        print(CLIENT_HELP)
        self._reader_task = asyncio.create_task(self._read_stdin())
        try:
            while True:
                line = await self._commands.get()
                if line is None:
                    break
                if not await self.execute(line):
                    break
        finally:
            self._reader_task.cancel()
            await self.client.disconnect()
        return 0

    async def execute(self, line: str) -> bool:
        """Run one console command; returns False when the client should exit."""
        parts = line.split()
        if not parts:
            return True
        command, args = parts[0].lower(), parts[1:]
        session = self.client.session

        try:
            if command == "audio":
                await session.enable_local_media()
            elif command == "call":
                await session.call(args[0] if args else None)
            elif command == "end":
                await session.end_call()
            elif command == "status":
                for key, value in self.client.get_status().items():
                    print(f"  {key}: {value}")
            elif command in ("quit", "exit"):
                return False
            else:
                print(CLIENT_HELP)
        except PreconditionViolation as e:
            self.show(str(e))
        except CallRelayError as e:
            self.show(f"Error: {e}")
        except Exception as e:
            self.logger.error(f"Command '{command}' failed: {e}", exc_info=True)
            self.show(f"Error: {e}")
        return True


def build_client_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Interactive call relay client")
    parser.add_argument("--server-url", help="Relay URL (default: RELAY_SERVER_URL)")
    parser.add_argument(
        "--env-file", default=".env", help="Environment file to load (default: .env)"
    )
    parser.add_argument("--device", help="Audio capture device (default: AUDIO_DEVICE)")
    parser.add_argument("--format", help="ffmpeg input format (default: AUDIO_FORMAT)")
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    return parser


def client_main(argv: Optional[List[str]] = None) -> int:
    """Entry point for call-relay-client."""
    args = build_client_parser().parse_args(argv)

    try:
        config = _load_config(args.env_file)
        if args.server_url:
            config.server_url = args.server_url
        if args.device:
            config.audio_device = args.device
        if args.format:
            config.audio_format = args.format
        if args.log_level:
            config.log_level = args.log_level
        config.validate()
    except ConfigurationError as e:
        print(f"❌ Invalid configuration: {e}", file=sys.stderr)
        return 1

    logger = setup_logging(component_name="call_client", log_level=config.log_level)

    async def _run() -> int:
        return await ConsoleClient(config, logger).run()

    try:
        return asyncio.run(_run())
    except KeyboardInterrupt:
        print("\nClient stopped.")
        return 0


if __name__ == "__main__":
    sys.exit(client_main())
