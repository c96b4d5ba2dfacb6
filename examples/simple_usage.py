#!/usr/bin/env python3
"""
Simple example of using the Secret Network SDK.
"""
import os
import json
from scrt_sdk import SecretClient, LocalSigner, ScrtError
from scrt_sdk.snip import snip20_transfer

def main():
    """
    Demonstrate basic usage of the SecretClient.

    This example shows how to:
    1. Initialize the client for a network
    2. Look up the signer's account
    3. Send a SNIP-20 transfer and wait for it to be indexed
    """
    # Read configuration from environment
    NETWORK = os.environ.get("SCRT_NETWORK", "testnet")
    TOKEN_CONTRACT = os.environ.get("TOKEN_CONTRACT")
    RECIPIENT = os.environ.get("RECIPIENT")
    PRIVATE_KEY = os.environ.get("SCRT_PRIVATE_KEY")

    # Verify configuration
    if not TOKEN_CONTRACT or not RECIPIENT:
        print("ERROR: TOKEN_CONTRACT and RECIPIENT environment variables are required")
        return

    if not PRIVATE_KEY:
        print("ERROR: SCRT_PRIVATE_KEY environment variable is required")
        return

    client = SecretClient.from_network(NETWORK)

    with LocalSigner(PRIVATE_KEY) as signer:
        address = client.derive_address(signer.public_key)
        print(f"Signer address: {address}")

        try:
            identity = client.fetch_account_identity(address)
            print(f"Account {identity.account_number} at sequence {identity.sequence}")

            result = client.execute_contract(
                TOKEN_CONTRACT,
                snip20_transfer(RECIPIENT, 1000),
                signer,
                gas_limit=150000,
                gas_price="0.1uscrt",
            )
        except ScrtError as e:
            print(f"Error: {e}")
            return

    txhash = result["tx_response"]["txhash"]
    print(f"Transaction sent: {txhash}")
    print(json.dumps(client.find_tx(txhash), indent=2))

if __name__ == "__main__":
    main()
