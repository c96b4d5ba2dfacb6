from .client_creator import (
    create_test_client, account_response, broadcast_response, decode_envelope,
    TEST_LCD_URL, TEST_CHAIN_ID, TEST_PRIV_KEY, TEST_PUBKEY_HEX, TEST_ACCOUNT_HASH,
    TEST_ACCOUNT_NUMBER, TEST_SEQUENCE, TEST_CONTRACT,
)
