# bios_trap_bridge/server/multipart.py
"""
multipart/form-data からファイルフィールドを取り出す最小限のパーサ。
"""
from email import policy
from email.parser import BytesParser

from bios_trap_bridge.common.errors import MalformedInputError


# @intent:responsibility 指定された名前のフォームフィールドの内容をバイト列で返します。
# @intent:pre-condition content_typeはboundaryパラメータを含むmultipart/form-dataである必要があります。
def read_form_file(content_type: str, body: bytes, field_name: str) -> bytes:
    if not content_type or not content_type.lower().startswith("multipart/form-data"):
        raise MalformedInputError("Expected a multipart/form-data upload.")

    # ヘッダを付けてMIMEメッセージとして解析する
    head = f"Content-Type: {content_type}\r\nMIME-Version: 1.0\r\n\r\n".encode("latin-1")
    message = BytesParser(policy=policy.HTTP).parsebytes(head + body)
    if not message.is_multipart():
        raise MalformedInputError("Upload body is not a valid multipart message.")

    for part in message.iter_parts():
        if part.get_param("name", header="content-disposition") == field_name:
            payload = part.get_payload(decode=True)
            return payload if payload is not None else b""
    raise MalformedInputError(f"Upload has no '{field_name}' field.")
