from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    Describes one environment setting a client depends on.

    Attributes:
        env_key (str): The raw key, without the "<TYPE>_<ENGINE>_" prefix (e.g. "BASE_URL").
        val_type (str): Expected value type: "string", "number", "bool" or "list".
        default (str | int | float | bool | list | None): Value used when the variable is not set.
            None marks the setting as required.
        lazy (bool): Required settings that are only checked when first used instead of
            when the client is constructed (e.g. credentials that idle deployments never need).
    """

    env_key: str
    val_type: str
    default: str | int | float | bool | list | None = None
    lazy: bool = False
