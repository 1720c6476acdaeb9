from typing import Literal
from urllib.parse import quote

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    broker_host: str = Field(..., validation_alias="BROKER_HOST")
    broker_port: int = Field(5672, validation_alias="BROKER_PORT")
    broker_user: str = Field("guest", validation_alias="BROKER_USER")
    broker_password: str = Field("guest", validation_alias="BROKER_PASSWORD")
    broker_vhost: str = Field("/", validation_alias="BROKER_VHOST")

    # Fanout exchange the queue is bound to; producers publish here.
    exchange_name: str = Field(..., validation_alias="EXCHANGE_NAME")
    queue_name: str = Field(..., validation_alias="QUEUE_NAME")
    prefetch_count: int = Field(1, ge=1, validation_alias="PREFETCH_COUNT")

    ack_mode: Literal["manual", "auto"] = Field("manual", validation_alias="ACK_MODE")
    payload_format: Literal["json", "bytes"] = Field("json", validation_alias="PAYLOAD_FORMAT")

    consumer_backend: str = Field("rabbitmq", validation_alias="CONSUMER_BACKEND")
    publisher_backend: str = Field("rabbitmq", validation_alias="PUBLISHER_BACKEND")

    initial_backoff_seconds: float = Field(0.5, validation_alias="INITIAL_BACKOFF_SECONDS")
    max_backoff_seconds: float = Field(10.0, validation_alias="MAX_BACKOFF_SECONDS")
    backoff_multiplier: float = Field(2.0, validation_alias="BACKOFF_MULTIPLIER")
    max_connection_attempts: int = Field(5, ge=1, validation_alias="MAX_CONNECTION_ATTEMPTS")

    # "package.module:callable" invoked for every decoded event by the entrypoint
    handler_path: str = Field("listener.app.handlers:log_event", validation_alias="HANDLER_PATH")

    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")
    log_json: bool = Field(False, validation_alias="LOG_JSON")

    @property
    def auto_ack(self) -> bool:
        return self.ack_mode == "auto"

    @property
    def amqp_url(self) -> str:
        vhost = quote(self.broker_vhost, safe="")
        return (
            f"amqp://{quote(self.broker_user, safe='')}:{quote(self.broker_password, safe='')}"
            f"@{self.broker_host}:{self.broker_port}/{vhost}"
        )
