"""
threema-e2e - Demo Entry Point

Walks through one gateway exchange end to end: keys, an encrypted text
message, an attachment, a signed callback and a contact lookup hash.
"""

import logging
from typing import List, Optional

from .callback.verifier import CallbackVerifier, compute_callback_mac, encode_url_params
from .core.keys import KeyPair, qrcode_text
from .core.values import BlobId, Identity, MessageId
from .files.blob import Blob
from .integration.event_logger import EventLogger
from .integration.structured_log import configure_logging
from .lookup.hashing import hash_email, hash_phone
from .messaging.envelope import MessageChannel
from .messaging.messages import FileBuilder, Text


def print_header(title: str) -> None:
    print("\n" + "=" * 60)
    print(f"  {title}")
    print("=" * 60)


def main(argv: Optional[List[str]] = None) -> int:
    """Run the walkthrough. Pass ``--log`` to also emit JSON log lines."""
    argv = argv or []
    if "--log" in argv:
        configure_logging(logging.INFO)

    events = EventLogger()
    gateway_id, user_id = Identity.of("*DEMOGWY"), Identity.of("DEMOUSER")
    gateway_keys, user_keys = KeyPair.generate(), KeyPair.generate()

    print_header("Keys")
    print(f"  Gateway QR code: {qrcode_text(gateway_id, gateway_keys.public_key)}")

    print_header("Text message")
    gateway = MessageChannel(gateway_keys, event_logger=events)
    gateway.establish(user_keys.public_key)
    user = MessageChannel(user_keys, event_logger=events)
    user.establish(gateway_keys.public_key)

    encrypted = gateway.encrypt(Text("Hello from the gateway"))
    print(f"  Sent:     {encrypted!r}")
    print(f"  Received: {user.decrypt(encrypted)}")

    print_header("File message")
    blob = Blob.new_file()
    content = blob.encrypt(b"demo attachment")
    file_message = (FileBuilder(blob.uploaded(BlobId.random(), len(content)), "text/plain")
                    .with_filename("demo.txt")
                    .build())
    received = user.decrypt(gateway.encrypt(file_message))
    print(f"  Received: {received}")
    print(f"  Content:  {received.file.decrypt(content)!r}")

    print_header("Callback")
    secret = "demo-secret"
    reply = user.encrypt(Text("Hello back"))
    params = {
        'from': user_id.value,
        'to': gateway_id.value,
        'messageId': MessageId.random().to_hex(),
        'date': "1650000000",
        'nonce': reply.nonce.to_hex(),
        'box': reply.to_hex(),
        'nickname': "Demo",
    }
    params['mac'] = compute_callback_mac(params, secret)
    callback = CallbackVerifier(secret, events).verify(encode_url_params(params))
    print(f"  From {callback.sender} ({callback.nickname}) at {callback.date.isoformat()}")
    print(f"  Message:  {gateway.decrypt(callback.message)}")

    print_header("Lookup hashes")
    print(f"  Phone +41 79 123 45-67: {hash_phone('+41 79 123 45-67').to_hex()}")
    print(f"  Email Test@Threema.ch:  {hash_email('Test@Threema.ch').to_hex()}")

    print_header("Audit trail")
    for event in events.get_all_events():
        print(f"  {event}")
    return 0


if __name__ == "__main__":
    import sys
    sys.exit(main(sys.argv[1:]))
