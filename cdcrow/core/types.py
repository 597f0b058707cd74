from enum import Enum
from typing import Dict, Optional, Union

Row = Dict[str, Optional[str]]


class DataType(str, Enum):
    STRING = "STRING"
    INT = "INT"
    BIGINT = "BIGINT"
    DOUBLE = "DOUBLE"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"
    TIMESTAMP = "TIMESTAMP"

    @classmethod
    def parse(cls, value: Union[str, "DataType"]) -> "DataType":
        if isinstance(value, DataType):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown column type '{value}'. Expected one of {[t.value for t in cls]}.") from None


# cast tail op name -> declared column type
CAST_TYPES: Dict[str, DataType] = {
    "str": DataType.STRING,
    "int": DataType.BIGINT,
    "float": DataType.DOUBLE,
    "bool": DataType.BOOLEAN,
}
