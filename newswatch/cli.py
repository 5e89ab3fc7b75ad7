"""
Terminal front end for the auth flows.

  newswatch signup
  newswatch login [--remember]
  newswatch reset-password
  newswatch verify-email EMAIL
  newswatch whoami
  newswatch logout

Point it at a local dev backend with API_BASE_URL=http://127.0.0.1:8000.
"""

import argparse
import asyncio
import getpass
import logging
import sys

from newswatch.errors import AuthFlowError, EmailNotVerifiedError
from newswatch.services import AuthService, FlowNotice, FlowState, OtpFlowController

logger = logging.getLogger(__name__)


async def _ask(prompt: str, secret: bool = False) -> str:
    reader = getpass.getpass if secret else input
    return (await asyncio.to_thread(reader, prompt)).strip()


def _show(notice: FlowNotice | None) -> None:
    if notice is None:
        return
    actions = ", ".join(a.value for a in notice.actions)
    print(f"[{notice.title}] {notice.message} (options: {actions})")


async def _enter_code(controller: OtpFlowController) -> bool:
    """Prompt until the code is accepted or the user quits. True once past code entry."""
    while controller.state is FlowState.AWAITING_CODE:
        if controller.dev_code:
            print(f"(dev code: {controller.dev_code})")
        raw = await _ask(f"Code [{controller.countdown_display}] ('r' resend, 'q' quit): ")
        if raw == "q":
            return False
        if raw == "r":
            _show(await controller.resend())
            continue
        controller.clear_code()
        notice = None
        for index, char in enumerate(raw[: controller.code_length]):
            notice = await controller.enter_digit(index, char)
            if controller.state is not FlowState.AWAITING_CODE:
                break
        if controller.state is FlowState.AWAITING_CODE and notice is None:
            notice = await controller.verify()
        _show(notice)
    return controller.state in (FlowState.COMPLETING, FlowState.DONE)


async def cmd_signup(service: AuthService, _args: argparse.Namespace) -> int:
    name = await _ask("Name: ")
    email = await _ask("Email: ")
    phone = await _ask("Phone: ")
    password = await _ask("Password: ", secret=True)
    role = await _ask("Role (visitor/reporter): ") or "visitor"
    controller = await service.begin_signup(name=name, email=email, phone=phone, password=password, role=role)
    async with controller:
        if controller.state is not FlowState.AWAITING_CODE:
            _show(controller.notice)
            return 1
        print(f"A verification code was sent to {controller.email}.")
        if not await _enter_code(controller):
            return 1
    if controller.state is not FlowState.DONE:
        _show(controller.notice)
        return 1
    print(f"Account created. Welcome, {service.session.user.name}! -> {controller.destination}")
    return 0


async def cmd_verify_email(service: AuthService, args: argparse.Namespace) -> int:
    controller = await service.start_email_verification(args.email)
    async with controller:
        if controller.state is not FlowState.AWAITING_CODE:
            _show(controller.notice)
            return 1
        if not await _enter_code(controller) or controller.state is not FlowState.DONE:
            _show(controller.notice)
            return 1
    print(f"Email verified -> {controller.destination}")
    return 0


async def cmd_login(service: AuthService, args: argparse.Namespace) -> int:
    remembered = await service.remembered_credentials()
    default_email = remembered[0] if remembered else ""
    email = await _ask(f"Email [{default_email}]: ") or default_email
    password = await _ask("Password: ", secret=True)
    if not password and remembered:
        password = remembered[1]
    try:
        user = await service.login(email, password, remember=args.remember)
    except EmailNotVerifiedError as e:
        print(e.message)
        args.email = email
        return await cmd_verify_email(service, args)
    print(f"Logged in as {user.name} -> {service.session.landing}")
    return 0


async def cmd_reset_password(service: AuthService, _args: argparse.Namespace) -> int:
    email = await _ask("Email: ")
    controller = await service.start_password_reset(email)
    async with controller:
        _show(controller.notice)
        if controller.state is not FlowState.AWAITING_CODE:
            return 1
        while controller.state is not FlowState.DONE:
            if controller.state is FlowState.COLLECTING_IDENTIFIER:
                return 1
            if controller.state is FlowState.AWAITING_CODE and not await _enter_code(controller):
                return 1
            if controller.state is FlowState.COMPLETING:
                new_password = await _ask("New password: ", secret=True)
                confirm = await _ask("Confirm password: ", secret=True)
                _show(await controller.complete_reset(new_password, confirm))
    print("Password reset successfully. Please sign in.")
    return 0


async def cmd_whoami(service: AuthService, _args: argparse.Namespace) -> int:
    if not await service.restore_session():
        print("Not logged in.")
        return 1
    user = service.session.user
    print(f"{user.name} <{user.email}> role={user.role}")
    return 0


async def cmd_logout(service: AuthService, _args: argparse.Namespace) -> int:
    await service.session.restore()
    await service.logout()
    print("Logged out.")
    return 0


COMMANDS = {
    "signup": cmd_signup,
    "login": cmd_login,
    "reset-password": cmd_reset_password,
    "verify-email": cmd_verify_email,
    "whoami": cmd_whoami,
    "logout": cmd_logout,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="newswatch", description="NewsWatch account tools")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    parser.add_argument("--store", default=None, help="Credential store URL (defaults to settings)")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("signup", help="Create an account (email verification required)")
    login = sub.add_parser("login", help="Sign in")
    login.add_argument("--remember", action="store_true", help="Remember email and password on this device")
    sub.add_parser("reset-password", help="Reset a forgotten password")
    verify = sub.add_parser("verify-email", help="Verify the email of an existing account")
    verify.add_argument("email")
    sub.add_parser("whoami", help="Show the signed-in user")
    sub.add_parser("logout", help="Sign out")
    return parser


async def run(args: argparse.Namespace) -> int:
    service = await AuthService.open(args.store)
    try:
        return await COMMANDS[args.command](service, args)
    except AuthFlowError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e.message}")
        return 1
    finally:
        await service.close()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
