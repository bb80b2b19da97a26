"""
Admin commands: send the delivered / review / out-for-delivery mail to a customer.

    purevia-admin delivered --email a@b.com --name Asha
    purevia-admin            # interactive: D = delivered, R = review, O = out for delivery
"""
import argparse
import asyncio
import logging
import sys

from purevia.deps import get_coordinator
from purevia.lifecycle import LifecycleCoordinator

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)

PROMPT = "💧 Type 'D' = Delivered mail, 'R' = Review mail, 'O' = Out-for-Delivery mail, 'Q' = quit"

COMMANDS = {
    "delivered": "D",
    "review": "R",
    "out-for-delivery": "O",
}


async def run_command(coordinator: LifecycleCoordinator, letter: str, email: str, name: str) -> None:
    if letter == "D":
        await coordinator.send_delivered_mail(email, name)
    elif letter == "R":
        await coordinator.send_review_mail(email, name)
    elif letter == "O":
        await coordinator.send_out_for_delivery_mail(email, name)
    else:
        raise ValueError(f"Unknown command {letter!r}")


def interactive(coordinator: LifecycleCoordinator) -> None:
    print(PROMPT)
    while True:
        try:
            cmd = input("> ").strip().upper()
        except EOFError:
            break
        if cmd == "Q":
            break
        if cmd not in ("D", "R", "O"):
            print("❌ Invalid command. Type 'D', 'R', or 'O'.")
            continue
        email = input("Enter customer email: ").strip()
        if not email:
            print("❌ Email cannot be empty")
            continue
        name = input("Enter customer name: ").strip() or "Customer"
        try:
            asyncio.run(run_command(coordinator, cmd, email, name))
            print("✅ Mail sent")
        except Exception:
            # keep the prompt alive whatever the transport raised
            logger.exception("Error sending mail")
        print()
        print(PROMPT)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="purevia-admin", description=__doc__.splitlines()[1])
    sub = parser.add_subparsers(dest="command")
    for command in COMMANDS:
        p = sub.add_parser(command)
        p.add_argument("--email", required=True)
        p.add_argument("--name", default="Customer")
    args = parser.parse_args(argv)

    coordinator = get_coordinator()
    if args.command is None:
        interactive(coordinator)
        return 0
    try:
        asyncio.run(run_command(coordinator, COMMANDS[args.command], args.email, args.name))
    except Exception:
        logger.exception("Error sending mail")
        return 1
    logger.info("%s mail sent to %s", args.command, args.email)
    return 0


if __name__ == "__main__":
    sys.exit(main())
