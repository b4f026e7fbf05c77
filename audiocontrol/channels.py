"""
One-way message channels between the authority and display processes.

Sends never block and never wait for an answer: results come back later as
separate notifications on the other channel.
"""

import queue
import logging
import threading
import multiprocessing

logger = logging.getLogger(__name__)


class QueueChannel:
    """Channel backed by a multiprocessing (or plain) queue"""

    def __init__(self, message_queue=None, name="channel"):
        self.queue = message_queue if message_queue is not None else multiprocessing.Queue()
        self.name = name

    def send(self, message):
        """Fire-and-forget put; returns False if the queue refused the message"""
        try:
            self.queue.put_nowait(message)
            logger.debug(f"[{self.name}] sent {message.get('type')}")
            return True
        except Exception as e:
            logger.error(f"[{self.name}] could not send {message.get('type')}: {e}")
            return False

    def receive(self, timeout=None):
        """Return the next message, or None if nothing arrived within timeout"""
        try:
            if timeout is None:
                return self.queue.get_nowait()
            return self.queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self, limit=100):
        """Return up to limit messages that are already waiting"""
        received = []
        while len(received) < limit:
            message = self.receive()
            if message is None:
                break
            received.append(message)
        return received

    def close(self):
        close = getattr(self.queue, "close", None)
        if close is not None:
            close()


class ChannelListener:
    """Background thread handing every received message to a handler"""

    def __init__(self, channel, handler, poll_interval=0.2, name="channel-listener"):
        """
        Args:
            channel: Object with receive(timeout)
            handler (callable): Called with each message
            poll_interval (float): Seconds to wait per receive before rechecking stop
        """
        self.channel = channel
        self.handler = handler
        self.poll_interval = poll_interval
        self.name = name
        self.running = False
        self.thread = None

    def start(self):
        self.running = True
        self.thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self.thread.start()
        logger.info(f"{self.name} started")

    def _run(self):
        while self.running:
            try:
                message = self.channel.receive(timeout=self.poll_interval)
            except (EOFError, OSError) as e:
                logger.warning(f"{self.name} channel closed: {e}")
                break
            if message is None:
                continue
            try:
                self.handler(message)
            except Exception as e:
                logger.error(f"{self.name} failed to handle {message!r}: {e}")
        self.running = False
        logger.info(f"{self.name} stopped")

    def stop(self, timeout=2):
        self.running = False
        if self.thread and self.thread.is_alive() and self.thread is not threading.current_thread():
            self.thread.join(timeout=timeout)
