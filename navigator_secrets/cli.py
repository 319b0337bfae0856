"""Command line interface for the secrets vault.

Usage:
    navigator-secrets init [--force]
    navigator-secrets add NAME [VALUE]      # VALUE read from stdin when omitted
    navigator-secrets get NAME
    navigator-secrets list
    navigator-secrets remove NAME
    navigator-secrets edit
    navigator-secrets rotate
    navigator-secrets decrypt [OUTPUT]      # plaintext JSON; stdout when omitted
    navigator-secrets encrypt INPUT         # replace the store from plaintext JSON

File locations come from the options below or from VAULT_SECRETS_FILE,
VAULT_PUBLIC_KEY_FILE and VAULT_PRIVATE_KEY_FILE.
"""
import argparse
import logging
import os
import sys

from .version import __version__
from .vault import OverwriteRequiredError, SecretsStore, VaultConfig, VaultError
from .vault.storage import dump_store, read_plaintext, write_plaintext

logger = logging.getLogger("navigator.secrets")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="navigator-secrets",
        description="Manage a file-backed, public-key encrypted secrets vault.",
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument("-s", "--secrets-file", help="JSON secrets store")
    parser.add_argument("-p", "--public-key", help="32-byte public key file")
    parser.add_argument("-k", "--private-key", help="32-byte private key file")
    parser.add_argument("--editor", help="editor command used by 'edit'")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")

    commands = parser.add_subparsers(dest="command", required=True)
    init = commands.add_parser("init", help="create an empty store and a new key pair")
    init.add_argument(
        "-f", "--force", action="store_true",
        help="overwrite existing files without asking",
    )
    add = commands.add_parser("add", help="encrypt and store a secret")
    add.add_argument("name")
    add.add_argument("value", nargs="?")
    get = commands.add_parser("get", help="decrypt and print a secret")
    get.add_argument("name")
    commands.add_parser("list", help="list secret names")
    remove = commands.add_parser("remove", help="delete a secret")
    remove.add_argument("name")
    commands.add_parser("edit", help="edit decrypted secrets in an editor")
    commands.add_parser("rotate", help="replace the key pair and re-encrypt")
    decrypt = commands.add_parser(
        "decrypt", help="write every decrypted secret as plaintext json",
    )
    decrypt.add_argument("output", nargs="?", help="file to write; stdout when omitted")
    encrypt = commands.add_parser(
        "encrypt", help="replace the store with secrets from a plaintext json file",
    )
    encrypt.add_argument("input")
    return parser


def load_config(args: argparse.Namespace) -> VaultConfig:
    editor = (
        args.editor
        or os.environ.get("VAULT_EDITOR")
        or os.environ.get("EDITOR")
    )
    values = {
        "secrets_file": args.secrets_file or os.environ.get("VAULT_SECRETS_FILE"),
        "public_key_file": args.public_key or os.environ.get("VAULT_PUBLIC_KEY_FILE"),
        "private_key_file": args.private_key or os.environ.get("VAULT_PRIVATE_KEY_FILE"),
    }
    if editor:
        values["editor"] = editor
    return VaultConfig.create(**values)


def _confirm(question: str) -> bool:
    try:
        answer = input(f"{question} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def cmd_init(store: SecretsStore, args: argparse.Namespace) -> None:
    try:
        store.initialize(overwrite_existing=args.force)
    except OverwriteRequiredError as err:
        print("The following vault files already exist:", file=sys.stderr)
        for path in err.existing_paths:
            print(f"  {path}", file=sys.stderr)
        if not _confirm("Overwrite them? Existing secrets will be lost."):
            raise
        store.initialize(overwrite_existing=True)
    print(
        "Secrets vault initialized. Store the private key in a secure location "
        "outside of version control; secrets cannot be recovered without it."
    )


def cmd_add(store: SecretsStore, args: argparse.Namespace) -> None:
    value = args.value
    if value is None:
        value = sys.stdin.read().rstrip("\n")
    store.add_entry(args.name, value)
    print(f"Secret {args.name} stored.")


def cmd_get(store: SecretsStore, args: argparse.Namespace) -> None:
    print(store.decrypt(args.name))


def cmd_list(store: SecretsStore, args: argparse.Namespace) -> None:
    for name in store.list_names():
        print(name)


def cmd_remove(store: SecretsStore, args: argparse.Namespace) -> None:
    store.remove_entry(args.name)
    print(f"Secret {args.name} removed.")


def cmd_edit(store: SecretsStore, args: argparse.Namespace) -> None:
    changes = store.edit()
    print(
        "Secrets re-encrypted: {} added, {} removed, {} changed.".format(
            len(changes["added"]), len(changes["removed"]), len(changes["changed"]),
        )
    )


def cmd_rotate(store: SecretsStore, args: argparse.Namespace) -> None:
    stats = store.rotate_key_pair()
    print(
        f"Key pair rotated; {stats['rotated']} secret(s) re-encrypted. "
        "Store the new private key in a secure location."
    )


def cmd_decrypt(store: SecretsStore, args: argparse.Namespace) -> None:
    secrets = store.read_all()
    if args.output is None:
        sys.stdout.write(dump_store(secrets).decode("utf-8"))
        return
    write_plaintext(args.output, secrets)
    print(
        f"{len(secrets)} secret(s) decrypted to {args.output}. "
        "Make sure this file is not committed to version control."
    )


def cmd_encrypt(store: SecretsStore, args: argparse.Namespace) -> None:
    count = store.import_plaintext(read_plaintext(args.input))
    print(f"{count} secret(s) encrypted into {store.path}.")


COMMANDS = {
    "init": cmd_init,
    "add": cmd_add,
    "get": cmd_get,
    "list": cmd_list,
    "remove": cmd_remove,
    "edit": cmd_edit,
    "rotate": cmd_rotate,
    "decrypt": cmd_decrypt,
    "encrypt": cmd_encrypt,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        store = SecretsStore(load_config(args))
        COMMANDS[args.command](store, args)
    except VaultError as err:
        print(f"error: {err}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
