"""Configuration module for the Shipway proxy.

This module provides the ProxyConfig class holding carrier credentials, the
per-operation carrier endpoint URLs, the document store connection and the
HTTP listener settings.

Example:
    Basic usage with defaults:

        >>> config = ProxyConfig()
        >>> config.read_timeout_seconds
        10

    Custom configuration:

        >>> config = ProxyConfig(
        ...     username="ops@example.com",
        ...     password="secret",
        ...     push_orders_url="https://carrier.example.com/api/PushOrderData",
        ...     store_backend="memory",
        ... )

    Loading from environment:

        >>> import os
        >>> os.environ['SHIPWAY_USERNAME'] = 'ops@example.com'
        >>> os.environ['SHIPWAY_HTTP_PORT'] = '8080'
        >>> config = ProxyConfig.from_env()
        >>> config.http_port
        8080
"""

import os
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

# Log levels accepted by configure_logging
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

# Carrier operations that have a configurable endpoint URL
CARRIER_OPERATIONS = (
    "push_orders",
    "label_generation",
    "create_manifest",
    "create_pickup",
    "onhold_orders",
    "cancel_orders",
    "cancel_shipment",
    "get_orders",
    "insert_order",
    "reattempt",
    "rto",
    "order_details",
    "get_carriers",
    "warehouse",
    "get_warehouses",
    "pincode_serviceable",
)


class ProxyConfig(BaseModel):
    """Configuration for the Shipway proxy.

    Attributes:
        username: Carrier account user name used for Basic authentication.
        password: Carrier account password (or license key).
        *_url: Carrier endpoint URL for each operation. An empty URL means
            the operation is not configured and calling it fails fast.
        read_timeout_seconds: Timeout applied to carrier read operations
            (carrier listing, warehouse listing, pincode check). Write
            operations carry no timeout. Must be between 1 and 120.
        store_backend: Entity store implementation, "mongo" or "memory".
        mongo_url: MongoDB connection string.
        mongo_db_name: MongoDB database name.
        http_host: Interface the HTTP server binds to.
        http_port: Port the HTTP server listens on.
        log_level: Minimum log level.
        json_logs: Emit JSON logs when True, console logs otherwise.

    Note:
        This class is immutable (frozen=True). Create a new instance if you
        need different settings.
    """

    username: str = Field(default="", description="Carrier Basic-Auth user name")
    password: str = Field(default="", description="Carrier Basic-Auth password")

    push_orders_url: str = Field(default="", description="Push order endpoint")
    label_generation_url: str = Field(default="", description="Label generation endpoint")
    create_manifest_url: str = Field(default="", description="Create manifest endpoint")
    create_pickup_url: str = Field(default="", description="Create pickup endpoint")
    onhold_orders_url: str = Field(default="", description="Onhold orders endpoint")
    cancel_orders_url: str = Field(default="", description="Cancel orders endpoint")
    cancel_shipment_url: str = Field(default="", description="Cancel shipment endpoint")
    get_orders_url: str = Field(default="", description="Carrier order listing endpoint")
    insert_order_url: str = Field(default="", description="NDR insert order endpoint")
    reattempt_url: str = Field(default="", description="NDR re-attempt endpoint")
    rto_url: str = Field(default="", description="NDR return-to-origin endpoint")
    order_details_url: str = Field(default="", description="NDR order details endpoint")
    get_carriers_url: str = Field(default="", description="Carrier listing endpoint")
    warehouse_url: str = Field(default="", description="Warehouse creation endpoint")
    get_warehouses_url: str = Field(default="", description="Warehouse listing endpoint")
    pincode_serviceable_url: str = Field(default="", description="Pincode check endpoint")

    read_timeout_seconds: int = Field(
        default=10,
        description="Timeout in seconds for carrier read operations (1-120)",
    )
    store_backend: Literal["mongo", "memory"] = Field(
        default="mongo",
        description="Entity store implementation",
    )
    mongo_url: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection string",
    )
    mongo_db_name: str = Field(
        default="SHIPWAY_SERVICE",
        description="MongoDB database name",
    )
    http_host: str = Field(default="0.0.0.0", description="HTTP bind address")
    http_port: int = Field(default=9090, description="HTTP listening port")
    log_level: str = Field(default="INFO", description="Minimum log level")
    json_logs: bool = Field(default=True, description="Emit JSON formatted logs")

    model_config = {"frozen": True}

    @field_validator("read_timeout_seconds")
    @classmethod
    def validate_read_timeout_seconds(cls, v: int) -> int:
        """Validate the read timeout is within an acceptable range.

        Raises:
            ValueError: If timeout is not between 1 and 120 seconds.
        """
        if not (1 <= v <= 120):
            raise ValueError(f"read_timeout_seconds must be between 1 and 120, got {v}")
        return v

    @field_validator("http_port")
    @classmethod
    def validate_http_port(cls, v: int) -> int:
        """Validate the HTTP port is a usable TCP port."""
        if not (1 <= v <= 65535):
            raise ValueError(f"http_port must be between 1 and 65535, got {v}")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: Any) -> str:
        """Normalize the log level to uppercase and check it is known.

        Example:
            >>> ProxyConfig(log_level="debug").log_level
            'DEBUG'
        """
        level = str(v).strip().upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level: {v}. Valid levels are: {', '.join(sorted(VALID_LOG_LEVELS))}"
            )
        return level

    @field_validator(*(f"{operation}_url" for operation in CARRIER_OPERATIONS))
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Strip whitespace and require an http(s) scheme on configured URLs."""
        v = v.strip()
        if v and not v.startswith(("http://", "https://")):
            raise ValueError(f"Carrier URL must start with http:// or https://, got {v!r}")
        return v

    def url_for(self, operation: str) -> str:
        """Return the configured carrier URL for an operation.

        Args:
            operation: Operation name, one of CARRIER_OPERATIONS.

        Returns:
            The configured URL, or an empty string when unset.

        Raises:
            KeyError: If the operation is unknown.
        """
        if operation not in CARRIER_OPERATIONS:
            raise KeyError(operation)
        url: str = getattr(self, f"{operation}_url")
        return url

    @classmethod
    def from_env(cls, prefix: str = "SHIPWAY_") -> "ProxyConfig":
        """Create configuration from environment variables.

        Variable names are the uppercase field names with the prefix, e.g.
        SHIPWAY_USERNAME, SHIPWAY_PUSH_ORDERS_URL, SHIPWAY_MONGO_URL.

        Args:
            prefix: Prefix for environment variable names. Default is "SHIPWAY_".

        Returns:
            ProxyConfig instance populated from environment variables.

        Note:
            Missing variables fall back to the defaults defined on the model.
        """
        config_dict: dict[str, Any] = {}

        for field_name, field_info in cls.model_fields.items():
            env_value = os.environ.get(f"{prefix}{field_name.upper()}")
            if env_value is None:
                continue

            if field_info.annotation is int:
                config_dict[field_name] = int(env_value)
            elif field_info.annotation is bool:
                config_dict[field_name] = env_value.strip().lower() in ("1", "true", "yes", "on")
            else:
                config_dict[field_name] = env_value

        return cls(**config_dict)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "ProxyConfig":
        """Create configuration from a dictionary.

        Raises:
            ValidationError: If the dictionary contains invalid values.
        """
        return cls(**config_dict)
