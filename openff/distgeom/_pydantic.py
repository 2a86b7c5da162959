try:
    from pydantic.v1 import (
        BaseModel,
        Field,
        PositiveFloat,
        PositiveInt,
        ValidationError,
        confloat,
        conint,
        validator,
    )
except ModuleNotFoundError:
    from pydantic import (  # type: ignore[assignment]
        BaseModel,
        Field,
        PositiveFloat,
        PositiveInt,
        ValidationError,
        confloat,
        conint,
        validator,
    )
