"""フォーマット分類モジュール

宣言されたMIMEタイプとファイル名から、変換元ファイルの大分類を判定する。
"""

from morphit.converter.base import DOCX_MIME, PDF_MIME, TEXT_MIME, ZIP_MIME, FormatCategory

ARCHIVE_EXTENSIONS = frozenset({"zip", "7z"})


def _extension_of(file_name: str) -> str:
    if "." not in file_name:
        return ""
    return file_name.rsplit(".", 1)[1].lower()


def classify(declared_type: str, file_name: str) -> FormatCategory:
    """変換元ファイルの大分類を判定する

    先に一致した規則が優先される。副作用はなく、常に値を返す。

    1. MIMEが image/ で始まる -> IMAGE
    2. 拡張子 pdf またはPDFのMIME -> PAGE_DOCUMENT
    3. 拡張子 docx またはOOXML文書のMIME -> PAGE_DOCUMENT
    4. 拡張子 txt または text/plain -> PAGE_DOCUMENT
    5. MIMEが audio/ で始まる -> AUDIO
    6. MIMEが video/ で始まる -> VIDEO
    7. 拡張子 zip/7z またはZIPのMIME -> ARCHIVE

    Args:
        declared_type: 宣言されたMIMEタイプ
        file_name: 元のファイル名

    Returns:
        判定されたFormatCategory（いずれにも一致しなければUNKNOWN）
    """
    mime = declared_type.strip().lower()
    ext = _extension_of(file_name)

    if mime.startswith("image/"):
        return FormatCategory.IMAGE
    if ext == "pdf" or mime == PDF_MIME:
        return FormatCategory.PAGE_DOCUMENT
    if ext == "docx" or mime == DOCX_MIME:
        return FormatCategory.PAGE_DOCUMENT
    if ext == "txt" or mime == TEXT_MIME:
        return FormatCategory.PAGE_DOCUMENT
    if mime.startswith("audio/"):
        return FormatCategory.AUDIO
    if mime.startswith("video/"):
        return FormatCategory.VIDEO
    if ext in ARCHIVE_EXTENSIONS or mime == ZIP_MIME:
        return FormatCategory.ARCHIVE
    return FormatCategory.UNKNOWN
