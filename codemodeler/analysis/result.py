"""Result record of one document analysis."""

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class CodeAnalysisResult:
    """Serialized artifacts for one file. A field is None when its step did not produce output."""

    ast_json: str | None = None
    cfg_json: str | None = None
    dfg_json: str | None = None
    metrics_json: str | None = None
    normalized_code: str | None = None
    anonymization_map_json: str | None = None
    failures: tuple[str, ...] = ()

    @classmethod
    def empty(cls) -> "CodeAnalysisResult":
        return cls()

    @property
    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (
                self.ast_json,
                self.cfg_json,
                self.dfg_json,
                self.metrics_json,
                self.normalized_code,
                self.anonymization_map_json,
            )
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["failures"] = list(self.failures)
        return data
