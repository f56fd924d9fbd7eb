from llama_parse import LlamaParse

from genedai.exceptions import DocumentError
from genedai.utils import file_extension

ALLOWED_EXTENSIONS = (".pdf", ".doc", ".docx")
MAX_FILE_SIZE = 10 * 1024 * 1024


def validate_upload(file_name: str, file_size: int) -> str:
    """Return the lower-cased extension, or raise DocumentError for files we cannot read."""
    ext = file_extension(file_name)
    if ext not in ALLOWED_EXTENSIONS:
        raise DocumentError(f"Invalid file type {ext or '(none)'}. Only PDF, DOC, and DOCX files are allowed.")
    if file_size > MAX_FILE_SIZE:
        raise DocumentError(f"File is too large ({file_size} bytes); the limit is {MAX_FILE_SIZE} bytes.")
    return ext


class ParseAgent:
    def __init__(self, llama_cloud_api_key: str):
        self.api_key = llama_cloud_api_key

    def _parser(self) -> LlamaParse:
        """Build a fresh parser per call to avoid closed TCPTransport/handler in long-lived clients."""
        return LlamaParse(
            api_key=self.api_key,
            result_type="text",
            verbose=False,
        )

    async def parse_file(self, file_path: str) -> str:
        parser = self._parser()
        try:
            docs = await parser.aload_data(file_path)
        except Exception as e:
            msg = str(e)
            if "TCPTransport closed" in msg or "handler is closed" in msg:
                # Retry once with a brand-new parser (no reused connection)
                docs = await self._parser().aload_data(file_path)
            else:
                raise DocumentError(f"Failed to extract text from document: {e}") from e

        text = "\n\n".join(getattr(d, "text", str(d)) for d in docs).strip()
        if not text:
            raise DocumentError("No text could be extracted from the document.")
        return text
