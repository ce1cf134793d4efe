from abc import ABC, abstractmethod
from schemaflow.models import ParseResult

class BaseParser(ABC):
    @abstractmethod
    def parse(self, sql_content: str) -> ParseResult:
        """Parses SQL content and returns a ParseResult."""
        pass
