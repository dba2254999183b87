from urllib.parse import quote


def generate_source_url(file_id: str, provider: str, file_name: str) -> str:
    """Build the link back to a document's original.

    Args:
        file_id (str): Provider file id.
        provider (str): DocumentSource provider.
        file_name (str): For Dropbox the file path, for local uploads the filename.

    Returns:
        str: The URL, or "" for an unknown provider.
    """
    if provider == "google_drive":
        return f"https://drive.google.com/file/d/{file_id}/view"
    if provider == "dropbox":
        return f"https://www.dropbox.com/home{file_name}"
    if provider == "onedrive":
        return f"https://onedrive.live.com/?id={file_id}"
    if provider == "local":
        return "/api/files/" + quote(file_name, safe="!*'()")
    return ""


def format_source_with_link(source: str, source_url: str | None = None) -> str:
    """Render a source as a markdown link when a URL is known."""
    if source_url:
        return f"[{source}]({source_url})"
    return source
