"""
Main entry point for the Initializer Controller.

Wires the API server accessor, the init hook invoker, the reconciliation loop
and the status API together and runs them until SIGINT/SIGTERM.
"""

import asyncio
import logging
import signal
from typing import Optional

from accessor import KubernetesAccessor
from api import StatusServer
from config import get_config
from controller import Controller
from hooks import WebhookInvoker

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


class Application:
    """Main application that runs the controller and the status API."""

    def __init__(self):
        self.config = get_config()
        self.accessor: Optional[KubernetesAccessor] = None
        self.controller: Optional[Controller] = None
        self.status_server: Optional[StatusServer] = None
        self.running = False

    async def initialize(self):
        """Initialize all components."""
        logging.getLogger().setLevel(self.config.api.log_level.upper())
        logger.info("Initializing Initializer Controller")

        self.accessor = KubernetesAccessor(self.config.kubernetes)
        await self.accessor.connect()

        self.controller = Controller(
            accessor=self.accessor,
            hook_invoker=WebhookInvoker(
                timeout_seconds=self.config.controller.hook_timeout
            ),
            config=self.config.controller,
        )

        if self.config.api.enabled:
            self.status_server = StatusServer(
                self.controller,
                host=self.config.api.host,
                port=self.config.api.port,
            )

        logger.info("All components initialized")

    async def start(self):
        """Start the application."""
        if not self.controller:
            await self.initialize()

        self.running = True
        tasks = [asyncio.create_task(self.controller.start())]
        if self.status_server:
            tasks.append(asyncio.create_task(self.status_server.start()))

        try:
            await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            logger.info("Application tasks cancelled")

    async def stop(self):
        """Stop the application gracefully."""
        if not self.running:
            return
        logger.info("Stopping Initializer Controller")
        self.running = False

        if self.controller:
            await self.controller.stop()

        if self.status_server:
            await self.status_server.stop()

        if self.accessor:
            await self.accessor.close()

        logger.info("Initializer Controller stopped")


async def main():
    """Main entry point."""
    app = Application()

    # Set up signal handlers for graceful shutdown
    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Received shutdown signal")
        asyncio.create_task(app.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        await app.start()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        await app.stop()


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
