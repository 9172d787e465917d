import logging

from cryptography.fernet import Fernet, InvalidToken

from config import ENV


class DecryptionError(Exception): ...


class AccountCipher:
    """
    Symmetric encryption for bank details stored on withdrawals.

    Uses Fernet, so ciphertexts are authenticated and carry their own IV.
    """

    def __init__(self, key: str | None = None):
        if key is None:
            key = ENV().ENCRYPTION_KEY
        self.fernet = Fernet(key.encode())

    def encrypt(self, plaintext: str) -> str:
        return self.fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: str) -> str:
        try:
            return self.fernet.decrypt(ciphertext.encode()).decode()
        except InvalidToken:
            logging.error("Failed to decrypt stored bank details, check ENCRYPTION_KEY")
            raise DecryptionError("Stored bank details cannot be decrypted") from None


def mask_account(account_number: str) -> str:
    if not account_number or len(account_number) < 4:
        return "****"
    return "*" * (len(account_number) - 4) + account_number[-4:]
