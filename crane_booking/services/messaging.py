"""Messaging abstraction supporting MQTT, AMQP and in-process backends."""

from __future__ import annotations

import asyncio
import json
import ssl
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional

import aio_pika
from aio_pika.abc import AbstractIncomingMessage
import paho.mqtt.client as mqtt

from crane_booking.enterprise.config.settings import NotificationSettings


MessageHandler = Callable[[dict], Awaitable[None] | None]

_EXCHANGE = "crane_booking"


@dataclass
class MessageEnvelope:
	"""Represents a structured message transported over the bus."""

	topic: str
	payload: dict
	qos: int = 1


class MessageBus:
	"""Abstract messaging bus interface."""

	async def connect(self) -> None:  # pragma: no cover - interface
		raise NotImplementedError

	async def publish(self, envelope: MessageEnvelope) -> None:  # pragma: no cover - interface
		raise NotImplementedError

	async def subscribe(self, topic: str, handler: MessageHandler) -> None:  # pragma: no cover - interface
		raise NotImplementedError

	async def close(self) -> None:  # pragma: no cover - interface
		raise NotImplementedError


async def _invoke(handler: MessageHandler, payload: dict) -> None:
	result = handler(payload)
	if asyncio.iscoroutine(result):
		await result


class InMemoryMessageBus(MessageBus):
	"""Delivers envelopes to local subscribers and keeps a copy of each."""

	def __init__(self) -> None:
		self.published: List[MessageEnvelope] = []
		self._subscriptions: Dict[str, List[MessageHandler]] = {}

	async def connect(self) -> None:
		return None

	async def publish(self, envelope: MessageEnvelope) -> None:
		# round-trip through JSON so payloads behave like they would on a broker
		payload = json.loads(json.dumps(envelope.payload, default=str))
		self.published.append(MessageEnvelope(envelope.topic, payload, envelope.qos))
		for handler in self._subscriptions.get(envelope.topic, []):
			await _invoke(handler, payload)

	async def subscribe(self, topic: str, handler: MessageHandler) -> None:
		self._subscriptions.setdefault(topic, []).append(handler)

	async def close(self) -> None:
		self._subscriptions.clear()


class MQTTMessageBus(MessageBus):
	"""Async wrapper around :mod:`paho.mqtt` with TLS support."""

	def __init__(self, client_id: str, settings: NotificationSettings) -> None:
		self.settings = settings
		self.client = mqtt.Client(client_id=client_id, callback_api_version=mqtt.CallbackAPIVersion.VERSION2)
		self.loop: Optional[asyncio.AbstractEventLoop] = None
		self._subscriptions: Dict[str, MessageHandler] = {}
		self.client.on_message = self._handle_message
		self.client.on_connect = self._on_connect

		if settings.username:
			self.client.username_pw_set(settings.username, settings.password)

		if settings.use_tls:
			context = ssl.create_default_context()
			if settings.ca_path:
				context.load_verify_locations(settings.ca_path)
			if settings.client_cert_path and settings.client_key_path:
				context.load_cert_chain(settings.client_cert_path, settings.client_key_path)
			self.client.tls_set_context(context)

	async def connect(self) -> None:
		self.loop = asyncio.get_running_loop()
		await self.loop.run_in_executor(
			None,
			lambda: self.client.connect(self.settings.broker_host, self.settings.port, keepalive=60),
		)
		self.client.loop_start()

	def _on_connect(self, client: mqtt.Client, _userdata, _flags, rc, _properties=None) -> None:
		if rc != 0:
			raise ConnectionError(f"MQTT connection failed with code {rc}")
		for topic in self._subscriptions:
			client.subscribe(topic)

	def _handle_message(
		self,
		_client: mqtt.Client,
		_userdata,
		msg: mqtt.MQTTMessage,
	) -> None:
		handler = self._subscriptions.get(msg.topic)
		if not handler or self.loop is None:
			return
		payload = json.loads(msg.payload.decode())
		asyncio.run_coroutine_threadsafe(_invoke(handler, payload), self.loop)

	async def publish(self, envelope: MessageEnvelope) -> None:
		if self.loop is None:
			raise RuntimeError("MQTT client not connected")
		data = json.dumps(envelope.payload, default=str)
		await self.loop.run_in_executor(
			None,
			lambda: self.client.publish(envelope.topic, data, qos=envelope.qos),
		)

	async def subscribe(self, topic: str, handler: MessageHandler) -> None:
		if self.loop is None:
			raise RuntimeError("MQTT client not connected")
		self._subscriptions[topic] = handler
		await self.loop.run_in_executor(None, lambda: self.client.subscribe(topic))

	async def close(self) -> None:
		if self.loop is None:
			return
		await self.loop.run_in_executor(None, self.client.loop_stop)
		await self.loop.run_in_executor(None, self.client.disconnect)


class AMQPMessageBus(MessageBus):
	"""AMQP implementation backed by :mod:`aio_pika`."""

	def __init__(self, url: str) -> None:
		self.url = url
		self._connection: Optional[aio_pika.abc.AbstractRobustConnection] = None
		self._channel: Optional[aio_pika.abc.AbstractChannel] = None
		self._exchange: Optional[aio_pika.abc.AbstractExchange] = None
		self._queues: Dict[str, aio_pika.abc.AbstractQueue] = {}

	async def connect(self) -> None:
		self._connection = await aio_pika.connect_robust(self.url)
		self._channel = await self._connection.channel()
		self._exchange = await self._channel.declare_exchange(_EXCHANGE, aio_pika.ExchangeType.TOPIC)

	async def publish(self, envelope: MessageEnvelope) -> None:
		if not self._exchange:
			raise RuntimeError("AMQP channel not initialised")
		await self._exchange.publish(
			aio_pika.Message(
				body=json.dumps(envelope.payload, default=str).encode(),
				content_type="application/json",
			),
			routing_key=envelope.topic.replace("/", "."),
		)

	async def subscribe(self, topic: str, handler: MessageHandler) -> None:
		if not self._channel:
			raise RuntimeError("AMQP channel not initialised")
		routing_key = topic.replace("/", ".")
		queue = await self._channel.declare_queue(routing_key, durable=False, auto_delete=True)
		await queue.bind(_EXCHANGE, routing_key=routing_key)

		async def _wrapped(message: AbstractIncomingMessage) -> None:
			async with message.process():
				await _invoke(handler, json.loads(message.body.decode()))

		await queue.consume(_wrapped)
		self._queues[topic] = queue

	async def close(self) -> None:
		if self._channel:
			await self._channel.close()
		if self._connection:
			await self._connection.close()


def create_message_bus(settings: NotificationSettings, client_id: str = "crane-booking") -> MessageBus:
	"""Build the bus selected by ``settings.backend``."""

	backend = settings.backend.lower()
	if backend == "mqtt":
		return MQTTMessageBus(client_id, settings)
	if backend == "amqp":
		if not settings.amqp_url:
			raise ValueError("notifications.amqp_url is required for the amqp backend")
		return AMQPMessageBus(settings.amqp_url)
	if backend == "memory":
		return InMemoryMessageBus()
	raise ValueError(f"Unknown notification backend: {settings.backend}")
