"""
Request and response bodies of the bulk ID lookup.

Request:
    {"phoneHashes":["<hex>", ...],"emailHashes":["<hex>", ...]}

Response:
    [{"phoneHash"|"emailHash": "<hex>", "identity": "<ID>", "publicKey": "<hex>"}, ...]
"""

import json
from dataclasses import dataclass
from typing import Dict, Iterable

from nacl.public import PublicKey

from ..core.errors import FormatError, ValidationError
from ..core.keys import decode_public_key, encode_public_key
from ..core.values import Hash, Identity


@dataclass(frozen=True)
class IdentityKey:
    """Threema ID together with its public key."""
    identity: Identity
    public_key: PublicKey

    def __str__(self) -> str:
        return f"IdentityKey[{self.identity.value}, {encode_public_key(self.public_key)}]"


def write_bulk_request(phone_hashes: Iterable[Hash], email_hashes: Iterable[Hash]) -> str:
    """Compact JSON request body; hashes keep their iteration order."""
    return json.dumps({
        'phoneHashes': [h.to_hex() for h in phone_hashes],
        'emailHashes': [h.to_hex() for h in email_hashes],
    }, separators=(',', ':'))


def read_bulk_response(body: str) -> Dict[Hash, IdentityKey]:
    """
    Parse a bulk lookup response.

    Returns:
        Mapping from every phone or email hash found to its ID and key

    Raises:
        FormatError: If the body is not the expected JSON structure
    """
    try:
        items = json.loads(body)
    except json.JSONDecodeError as e:
        raise FormatError("Bulk lookup response is not valid JSON") from e
    if not isinstance(items, list):
        raise FormatError("Bulk lookup response must be a JSON array")

    result: Dict[Hash, IdentityKey] = {}
    for item in items:
        if not isinstance(item, dict):
            raise FormatError("Bulk lookup entries must be JSON objects")
        try:
            entry = IdentityKey(Identity.of(item['identity']),
                                decode_public_key(item['publicKey']))
            for key in ('phoneHash', 'emailHash'):
                if item.get(key) is not None:
                    result[Hash.from_hex(item[key])] = entry
        except (KeyError, TypeError, ValidationError) as e:
            raise FormatError(f"Invalid bulk lookup entry: {e}") from e
    return result
