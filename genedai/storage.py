from typing import Dict, List, Optional

from genedai.schemas import StoredAnalysis, SyllabusAnalysis


class AnalysisStore:
    """In-memory analysis table keyed by id. Rows are immutable; delete is the only mutation."""

    def __init__(self):
        self._rows: Dict[int, StoredAnalysis] = {}
        self._next_id = 1

    def create(self, analysis: SyllabusAnalysis) -> StoredAnalysis:
        stored = StoredAnalysis(**analysis.model_dump(), id=self._next_id)
        self._rows[stored.id] = stored
        self._next_id += 1
        return stored

    def get(self, analysis_id: int) -> Optional[StoredAnalysis]:
        return self._rows.get(analysis_id)

    def all(self) -> List[StoredAnalysis]:
        return list(self._rows.values())

    def recent(self, limit: int = 5) -> List[StoredAnalysis]:
        rows = sorted(self._rows.values(), key=lambda a: (a.upload_date, a.id), reverse=True)
        return rows[:max(limit, 0)]

    def search(self, query: str) -> List[StoredAnalysis]:
        needle = query.strip().casefold()
        if not needle:
            return self.all()
        return [
            a for a in self._rows.values()
            if needle in a.course_name.casefold() or needle in a.course_code.casefold()
        ]

    def delete(self, analysis_id: int) -> bool:
        return self._rows.pop(analysis_id, None) is not None
