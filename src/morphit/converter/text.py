"""テキスト抽出モジュール"""

import io

import mammoth  # type: ignore[import-untyped]

from morphit.converter.base import DecodeFailure, SourceFile


class TextDocumentCodec:
    """DOCX文書から書式を除いた本文テキストを取り出すコーデック"""

    encoding = "utf-8"

    def extract_plain_text(self, source: SourceFile) -> bytes:
        """DOCX文書の本文テキストを抽出する

        書式や構造はすべて捨て、文字だけをUTF-8のバイト列として返す。

        Args:
            source: DOCXの変換元ファイル

        Returns:
            抽出したテキストのバイト列

        Raises:
            DecodeFailure: DOCXとして解析できない場合
        """
        try:
            result = mammoth.extract_raw_text(io.BytesIO(source.data))
        except Exception as e:
            raise DecodeFailure(f"DOCX文書を解析できません: {e}") from e
        return result.value.encode(self.encoding)
