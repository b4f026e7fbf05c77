"""
MQTT transport for intents and notifications.

Lets the display process run apart from the authority process: each side
publishes to one topic and subscribes to the other.
"""

import queue
import logging
import paho.mqtt.client as mqtt
from . import messages
from .exceptions import MessageFormatError

logger = logging.getLogger(__name__)


class MQTTChannel:
    """Bidirectional channel: send() publishes, receive() reads the subscribed topic"""

    def __init__(self, mqtt_config, publish_topic, subscribe_topic, client=None, role="authority"):
        """
        Initialize MQTT channel

        Args:
            mqtt_config (dict): "mqtt" configuration section
            publish_topic (str): Topic outgoing messages are published on
            subscribe_topic (str): Topic incoming messages are read from
            client: Pre-built paho client (tests)
            role (str): Suffix appended to the client id
        """
        self.publish_topic = publish_topic
        self.subscribe_topic = subscribe_topic
        self.connected = False
        self.inbox = queue.Queue()

        self.broker = mqtt_config.get("broker", "localhost")
        self.port = mqtt_config.get("port", 1883)
        self.username = mqtt_config.get("username", "")
        self.password = mqtt_config.get("password", "")
        self.client_id = f"{mqtt_config.get('client_id', 'PCAudioController')}-{role}"
        self.keepalive = mqtt_config.get("keepalive", 60)
        self.qos = mqtt_config.get("qos", 1)

        self.client = client or mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=self.client_id)

        # Set callbacks
        self.client.on_connect = self.on_connect
        self.client.on_disconnect = self.on_disconnect
        self.client.on_message = self.on_message

        # Set authentication if provided
        if self.username and self.password:
            self.client.username_pw_set(self.username, self.password)

        logger.info(f"MQTT channel initialized for broker {self.broker}:{self.port} "
                    f"(publish {publish_topic}, subscribe {subscribe_topic})")

    def connect(self, reconnect_delay=5):
        """Start the network loop; paho keeps reconnecting in the background"""
        try:
            logger.info(f"Connecting to MQTT broker at {self.broker}:{self.port}...")
            self.client.reconnect_delay_set(min_delay=1, max_delay=reconnect_delay)
            self.client.connect_async(self.broker, self.port, self.keepalive)
            self.client.loop_start()
            return True
        except Exception as e:
            logger.error(f"Failed to connect to MQTT broker: {e}")
            return False

    def on_connect(self, client, userdata, flags, reason_code, properties=None):
        """Callback for when client connects to broker"""
        if reason_code == 0:
            self.connected = True
            logger.info("Connected to MQTT broker successfully")
            client.subscribe(self.subscribe_topic, self.qos)
            logger.info(f"Subscribed to {self.subscribe_topic}")
        else:
            self.connected = False
            logger.error(f"Connection failed with code {reason_code}")

    def on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        """Callback for when client disconnects from broker"""
        self.connected = False
        if reason_code != 0:
            logger.warning(f"Unexpected disconnection (code: {reason_code}), reconnecting...")
        else:
            logger.info("Disconnected from MQTT broker")

    def on_message(self, client, userdata, msg):
        """Queue a decoded message for receive()"""
        if msg.topic != self.subscribe_topic:
            return
        try:
            message = messages.decode(msg.payload)
        except MessageFormatError as e:
            logger.warning(f"Dropping message on {msg.topic}: {e}")
            return
        logger.debug(f"Received {message['type']} on {msg.topic}")
        self.inbox.put(message)

    def send(self, message):
        """Publish a message; returns False if it could not be queued by paho"""
        try:
            info = self.client.publish(self.publish_topic, messages.encode(message), qos=self.qos)
            if info.rc != mqtt.MQTT_ERR_SUCCESS:
                logger.warning(f"Publish of {message.get('type')} failed (rc={info.rc})")
                return False
            return True
        except Exception as e:
            logger.error(f"Error publishing {message.get('type')}: {e}")
            return False

    def receive(self, timeout=None):
        try:
            if timeout is None:
                return self.inbox.get_nowait()
            return self.inbox.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self, limit=100):
        received = []
        while len(received) < limit:
            message = self.receive()
            if message is None:
                break
            received.append(message)
        return received

    def close(self):
        """Stop MQTT client and cleanup"""
        try:
            self.client.loop_stop()
            self.client.disconnect()
            logger.info("MQTT channel stopped")
        except Exception as e:
            logger.error(f"Error stopping MQTT channel: {e}")

    def get_connection_status(self):
        return {
            "connected": self.connected,
            "broker": self.broker,
            "port": self.port,
            "client_id": self.client_id
        }


def create_mqtt_channels(mqtt_config, role):
    """
    Build the (inbound, outbound) channel pair for a process role

    The authority reads intents and publishes notifications; the display does
    the reverse. Both directions share one client.
    """
    topics = mqtt_config.get("topics", {})
    intent_topic = topics.get("intent", "audiocontrol/intent")
    notify_topic = topics.get("notify", "audiocontrol/notify")

    if role == "authority":
        channel = MQTTChannel(mqtt_config, publish_topic=notify_topic, subscribe_topic=intent_topic, role=role)
    else:
        channel = MQTTChannel(mqtt_config, publish_topic=intent_topic, subscribe_topic=notify_topic, role=role)
    channel.connect()
    return channel, channel
