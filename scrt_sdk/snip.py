"""
SNIP-20 and SNIP-721 token message builders.

Execute messages go through SecretClient.execute_contract; query messages
through SecretClient.query_contract. Queries over private state need the
owner's viewing key.
"""
from typing import Any, Dict, Optional


def _with_options(msg: Dict[str, Any], memo: Optional[str], padding: Optional[str]) -> Dict[str, Any]:
    if memo:
        msg["memo"] = memo
    if padding:
        msg["padding"] = padding
    return msg


# SNIP-20 execute messages

def snip20_transfer(
    recipient: str,
    amount: int,
    memo: Optional[str] = None,
    padding: Optional[str] = None
) -> Dict[str, Any]:
    return {"transfer": _with_options(
        {"recipient": recipient, "amount": str(amount)}, memo, padding
    )}


def snip20_send(
    recipient: str,
    amount: int,
    msg: Optional[str] = None,
    recipient_code_hash: Optional[str] = None,
    memo: Optional[str] = None,
    padding: Optional[str] = None
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"recipient": recipient, "amount": str(amount)}
    if msg:
        body["msg"] = msg
    if recipient_code_hash:
        body["recipient_code_hash"] = recipient_code_hash
    return {"send": _with_options(body, memo, padding)}


def snip20_set_viewing_key(key: str, padding: Optional[str] = None) -> Dict[str, Any]:
    return {"set_viewing_key": _with_options({"key": key}, None, padding)}


def snip20_create_viewing_key(entropy: str, padding: Optional[str] = None) -> Dict[str, Any]:
    return {"create_viewing_key": _with_options({"entropy": entropy}, None, padding)}


def _allowance_change(
    spender: str,
    amount: int,
    expiration: Optional[int],
    padding: Optional[str]
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"spender": spender, "amount": str(amount)}
    if expiration is not None:
        body["expiration"] = expiration
    return _with_options(body, None, padding)


def snip20_increase_allowance(
    spender: str,
    amount: int,
    expiration: Optional[int] = None,
    padding: Optional[str] = None
) -> Dict[str, Any]:
    """
    Raise how much spender may move on the caller's behalf.

    expiration is a unix timestamp in seconds after which the allowance lapses.
    """
    return {"increase_allowance": _allowance_change(spender, amount, expiration, padding)}


def snip20_decrease_allowance(
    spender: str,
    amount: int,
    expiration: Optional[int] = None,
    padding: Optional[str] = None
) -> Dict[str, Any]:
    return {"decrease_allowance": _allowance_change(spender, amount, expiration, padding)}


# SNIP-20 queries

def snip20_balance_query(address: str, viewing_key: str) -> Dict[str, Any]:
    return {"balance": {"address": address, "key": viewing_key}}


def snip20_allowance_query(owner: str, spender: str, viewing_key: str) -> Dict[str, Any]:
    return {"allowance": {"owner": owner, "spender": spender, "key": viewing_key}}


def snip20_token_info_query() -> Dict[str, Any]:
    return {"token_info": {}}


def snip20_transfer_history_query(
    address: str,
    viewing_key: str,
    page: int = 0,
    page_size: int = 10
) -> Dict[str, Any]:
    return {"transfer_history": {
        "address": address,
        "key": viewing_key,
        "page": page,
        "page_size": page_size,
    }}


# SNIP-721 execute messages

def snip721_transfer_nft(recipient: str, token_id: str, memo: Optional[str] = None) -> Dict[str, Any]:
    return {"transfer_nft": _with_options({"recipient": recipient, "token_id": token_id}, memo, None)}


def snip721_mint_nft(
    token_id: str,
    owner: str,
    metadata: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"token_id": token_id, "owner": owner}
    if metadata:
        body["public_metadata"] = metadata
    return {"mint_nft": body}


def snip721_approve(spender: str, token_id: str, expires: Optional[Any] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"spender": spender, "token_id": token_id}
    if expires is not None:
        body["expires"] = expires
    return {"approve": body}


def snip721_approve_all(operator: str, approved: bool = True) -> Dict[str, Any]:
    if approved:
        return {"approve_all": {"operator": operator}}
    return {"revoke_all": {"operator": operator}}


# SNIP-721 queries

def snip721_owner_of_query(token_id: str, viewer: str, viewing_key: str) -> Dict[str, Any]:
    return {"owner_of": {
        "token_id": token_id,
        "viewer": {"address": viewer, "viewing_key": viewing_key},
    }}


def snip721_nft_info_query(token_id: str) -> Dict[str, Any]:
    return {"nft_info": {"token_id": token_id}}


def snip721_approvals_query(owner: str, viewing_key: str) -> Dict[str, Any]:
    return {"inventory_approvals": {"address": owner, "viewing_key": viewing_key}}


def snip721_tokens_query(owner: str, viewing_key: Optional[str] = None, limit: int = 30) -> Dict[str, Any]:
    body: Dict[str, Any] = {"owner": owner, "limit": limit}
    if viewing_key:
        body["viewing_key"] = viewing_key
    return {"tokens": body}
