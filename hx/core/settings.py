# Author: Futhark1393
# Description: Hashing configuration (chunk size, output case, export format).

from dataclasses import dataclass

from hx.core.algorithms import AlgorithmRegistry, DelegationMode
from hx.core.hashing import RESULT_FORMATS, StreamingHasher
from hx.core.source import DEFAULT_CHUNK_SIZE
from hx.core.validation import validate_choice, validate_chunk_size

EXPORT_FORMATS = ("txt", "csv", "pdf")


class ConfigurationError(ValueError):
    """Raised when HashSettings fails validation."""
    pass


@dataclass
class HashSettings:
    chunk_size: int = DEFAULT_CHUNK_SIZE
    result_format: str = "lowercase"
    export_format: str = "txt"
    hmac_key: str = ""
    delegation_mode: DelegationMode = DelegationMode.INCREMENTAL

    def validate(self) -> None:
        checks = (
            validate_chunk_size(self.chunk_size),
            validate_choice(self.result_format, RESULT_FORMATS, "result format"),
            validate_choice(self.export_format, EXPORT_FORMATS, "export format"),
        )
        for ok, err in checks:
            if not ok:
                raise ConfigurationError(err)

    @classmethod
    def from_args(cls, args) -> "HashSettings":
        settings = cls(
            chunk_size=args.chunk_size,
            result_format="uppercase" if args.uppercase else "lowercase",
            export_format=args.export_format,
            hmac_key=args.hmac_key or "",
            delegation_mode=DelegationMode.ONE_SHOT if args.one_shot else DelegationMode.INCREMENTAL,
        )
        settings.validate()
        return settings

    def build_hasher(self) -> StreamingHasher:
        return StreamingHasher(AlgorithmRegistry(self.delegation_mode), hmac_key=self.hmac_key)
