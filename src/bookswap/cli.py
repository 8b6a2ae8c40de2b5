"""Command-line interface for bookswap.

Built with Typer for commands and Rich for output. Commands act as the user
given by ``--user`` or ``BOOKSWAP_USER_ID``.
"""

import logging
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .auth import AuthError
from .books import Book, BookCondition, BookCreate, BookError, BookRepository, BookUpdate
from .chats import ChatError, ChatRepository
from .config import get_config
from .firebase import FirebaseInitError
from .swaps import SwapError, SwapOfferCreate, SwapRepository, SwapStatus
from .users import UserNotFoundError, UserProfile, UserRepository, UserUpdate

# Create the main app
app = typer.Typer(
    name="bookswap",
    help="Swap books with other readers.",
    no_args_is_help=True,
)

# Create sub-apps for command groups
books_app = typer.Typer(help="List, browse and manage books.", no_args_is_help=True)
swaps_app = typer.Typer(help="Offer, accept and track swaps.", no_args_is_help=True)
chats_app = typer.Typer(help="Chat with other readers.", no_args_is_help=True)
users_app = typer.Typer(help="View and edit profiles.", no_args_is_help=True)
auth_app = typer.Typer(help="Sign up, sign in and reset passwords.", no_args_is_help=True)
app.add_typer(books_app, name="books")
app.add_typer(swaps_app, name="swaps")
app.add_typer(chats_app, name="chats")
app.add_typer(users_app, name="users")
app.add_typer(auth_app, name="auth")

# Rich console for pretty output
console = Console()

# Errors reported to the user instead of as tracebacks
HANDLED_ERRORS = (
    BookError,
    SwapError,
    ChatError,
    UserNotFoundError,
    AuthError,
    FirebaseInitError,
    ValueError,
)

# Acting user for this invocation, set by the root callback
_state: dict = {"user_id": None}


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[bold yellow]Warning:[/bold yellow] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[dim]{message}[/dim]")


def error_message(error: Exception) -> str:
    """Readable text for a handled error."""
    if isinstance(error, ValidationError):
        return "; ".join(
            err["msg"].removeprefix("Value error, ") for err in error.errors()
        )
    return str(error)


def fail(error: Exception) -> None:
    """Print a handled error and exit non-zero."""
    print_error(error_message(error))
    raise typer.Exit(1)


def acting_user_id() -> str:
    """ID of the user the command acts as."""
    user_id = _state["user_id"]
    if not user_id:
        print_error("No user selected. Pass --user or set BOOKSWAP_USER_ID.")
        raise typer.Exit(1)
    return user_id


def acting_user(users: UserRepository) -> UserProfile:
    """Profile of the user the command acts as."""
    user_id = acting_user_id()
    profile = users.get_user(user_id)
    if profile is None:
        print_error(f"No profile found for user {user_id}")
        raise typer.Exit(1)
    return profile


def find_book(repo: BookRepository, ref: str, user_id: Optional[str] = None) -> Book:
    """Look up a book by its full ID or by the short ID shown in tables.

    Prefixes are matched against browsable books and, when a user is given,
    that user's own listings.
    """
    ref = ref.strip()
    book = repo.get_book(ref) if ref else None
    if book is not None:
        return book

    candidates = {b.id: b for b in repo.list_available_books()}
    if user_id:
        candidates.update({b.id: b for b in repo.list_user_books(user_id)})
    matches = [b for b in candidates.values() if ref and b.id.startswith(ref)]

    if not matches:
        print_error(f"Book not found: {ref}")
        raise typer.Exit(1)
    if len(matches) > 1:
        print_error(f"Book ID {ref} matches {len(matches)} books; use more characters")
        raise typer.Exit(1)
    return matches[0]


def status_text(status) -> str:
    """Status rendered in its display colour."""
    return f"[{status.color}]{status.display}[/]"


def book_status_text(book) -> str:
    colors = {"available": "green", "pending": "yellow", "swapped": "dim"}
    return f"[{colors[book.status.value]}]{book.status.display}[/]"


def format_book_table(books: list, title: str = "Books") -> Table:
    """Create a rich table for displaying books."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title", style="cyan", no_wrap=False, max_width=40)
    table.add_column("Author", style="green", max_width=25)
    table.add_column("Condition")
    table.add_column("Status")
    table.add_column("Owner", max_width=20)

    for book in books:
        table.add_row(
            book.id[:8],
            book.title,
            book.author,
            f"[{book.condition.color}]{book.condition.display}[/]",
            book_status_text(book),
            book.owner_name,
        )

    return table


def format_swap_table(swaps: list, user_id: str, title: str = "Swaps") -> Table:
    """Create a rich table for displaying swaps from one user's side."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Book", style="cyan", max_width=40)
    table.add_column("Direction")
    table.add_column("With", max_width=20)
    table.add_column("Status")
    table.add_column("Created", style="dim")

    for swap in swaps:
        if swap.sender_id == user_id:
            direction, other = "Sent", swap.recipient_name
        else:
            direction, other = "Received", swap.sender_name
        table.add_row(
            swap.id,
            swap.book_title,
            direction,
            other,
            status_text(swap.status),
            swap.created_at.strftime("%Y-%m-%d %H:%M"),
        )

    return table


# ============================================================================
# Root Callback
# ============================================================================


@app.callback()
def main_callback(
    user: Optional[str] = typer.Option(
        None, "--user", "-u", help="User ID to act as (default: BOOKSWAP_USER_ID)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Swap books with other readers."""
    config = get_config()
    _state["user_id"] = user or config.user_id

    level = "DEBUG" if verbose else config.log_level
    logging.basicConfig(
        level=logging.getLevelNamesMapping().get(level, logging.WARNING),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


# ============================================================================
# Book Commands
# ============================================================================


@books_app.command("add")
def books_add(
    title: str = typer.Option(..., "--title", "-t", prompt="Book title"),
    author: str = typer.Option(..., "--author", "-a", prompt="Author"),
    condition: str = typer.Option(
        ..., "--condition", "-c", prompt="Condition (New, Like New, Good, Used)"
    ),
    image: Optional[Path] = typer.Option(
        None, "--image", "-i", exists=True, dir_okay=False, help="Cover image file"
    ),
    image_url: Optional[str] = typer.Option(None, "--image-url", help="Cover image URL"),
    isbn: Optional[str] = typer.Option(None, "--isbn", help="ISBN-10 or ISBN-13"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Description"),
) -> None:
    """List a book for swapping."""
    users = UserRepository()
    owner = acting_user(users)

    try:
        data = BookCreate(
            title=title,
            author=author,
            condition=condition,
            owner_id=owner.uid,
            owner_name=owner.display_name,
            owner_email=owner.email,
            isbn=isbn,
            description=description,
        )
        image_bytes = image.read_bytes() if image else None
        book = BookRepository().create_book(data, image_bytes=image_bytes, image_url=image_url)
    except HANDLED_ERRORS as e:
        fail(e)

    print_success(f"Listed: {book.title} by {book.author}")
    print_info(f"Book ID: {book.id}")


@books_app.command("list")
def books_list() -> None:
    """List your own books."""
    user_id = acting_user_id()
    try:
        books = BookRepository().list_user_books(user_id)
    except HANDLED_ERRORS as e:
        fail(e)

    if not books:
        console.print("[dim]You have no listings yet.[/dim]")
        return

    console.print(format_book_table(books, title="My Listings"))


@books_app.command("browse")
def books_browse(
    condition: Optional[str] = typer.Option(None, "--condition", "-c", help="Filter by condition"),
    limit: int = typer.Option(20, "--limit", "-l", help="Max books to show"),
) -> None:
    """Browse books open for swapping."""
    repo = BookRepository()
    try:
        if condition:
            cond = BookCondition.parse(condition)
            books = repo.list_books_by_condition(cond)
            title = f"Books - {cond.display}"
        else:
            books = repo.list_available_books()
            title = "Browse Books"
    except HANDLED_ERRORS as e:
        fail(e)

    if not books:
        console.print("[dim]No books found.[/dim]")
        return

    console.print(format_book_table(books[:limit], title=title))
    if len(books) > limit:
        print_info(f"Showing {limit} of {len(books)} books")


@books_app.command("search")
def books_search(
    query: str = typer.Argument(..., help="Title or author to search for"),
    fuzzy: bool = typer.Option(False, "--fuzzy", "-f", help="Allow approximate matches"),
) -> None:
    """Search books by title or author."""
    try:
        books = BookRepository().search_books(query, fuzzy=fuzzy)
    except HANDLED_ERRORS as e:
        fail(e)

    if not books:
        console.print(f"[dim]No books found matching: {query}[/dim]")
        return

    console.print(format_book_table(books, title=f"Search: {query}"))


@books_app.command("show")
def books_show(book_id: str = typer.Argument(..., help="Book ID")) -> None:
    """Show a book's details."""
    try:
        book = find_book(BookRepository(), book_id, _state["user_id"])
    except HANDLED_ERRORS as e:
        fail(e)

    lines = [
        f"[bold]{book.title}[/bold]",
        f"by {book.author}",
        "",
        f"Condition: [{book.condition.color}]{book.condition.display}[/]",
        f"Status: {book_status_text(book)}",
        f"Owner: {book.owner_name} ({book.owner_email})",
    ]
    if book.isbn:
        lines.append(f"ISBN: {book.isbn}")
    if book.description:
        lines.append(f"\n{book.description}")
    lines.append(f"\nCover: {book.image_url}")
    lines.append(f"Listed: {book.created_at.strftime('%Y-%m-%d')}")
    lines.append(f"ID: {book.id}")

    console.print(Panel("\n".join(lines), title="Book Details"))


@books_app.command("update")
def books_update(
    book_id: str = typer.Argument(..., help="Book ID"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="New title"),
    author: Optional[str] = typer.Option(None, "--author", "-a", help="New author"),
    condition: Optional[str] = typer.Option(None, "--condition", "-c", help="New condition"),
    image_url: Optional[str] = typer.Option(None, "--image-url", help="New cover image URL"),
    isbn: Optional[str] = typer.Option(None, "--isbn", help="New ISBN"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="New description"),
) -> None:
    """Edit one of your listings."""
    user_id = acting_user_id()
    changes = {
        "title": title,
        "author": author,
        "condition": condition,
        "image_url": image_url,
        "isbn": isbn,
        "description": description,
    }
    changes = {key: value for key, value in changes.items() if value is not None}
    if not changes:
        print_warning("Nothing to update")
        raise typer.Exit(1)

    repo = BookRepository()
    try:
        book = find_book(repo, book_id, user_id)
        if book.owner_id != user_id:
            print_error("You can only edit your own books")
            raise typer.Exit(1)
        book = repo.update_book(book.id, BookUpdate(**changes))
    except HANDLED_ERRORS as e:
        fail(e)

    print_success(f"Updated: {book.title}")


@books_app.command("delete")
def books_delete(
    book_id: str = typer.Argument(..., help="Book ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete one of your listings."""
    user_id = acting_user_id()
    repo = BookRepository()
    try:
        book = find_book(repo, book_id, user_id)
        if book.owner_id != user_id:
            print_error("You can only delete your own books")
            raise typer.Exit(1)
        if not yes and not typer.confirm(f"Delete '{book.title}'?", default=False):
            console.print("[dim]Cancelled.[/dim]")
            raise typer.Exit(0)
        repo.delete_book(book.id)
    except HANDLED_ERRORS as e:
        fail(e)

    print_success(f"Deleted: {book.title}")


# ============================================================================
# Swap Commands
# ============================================================================


@swaps_app.command("offer")
def swaps_offer(
    book_id: str = typer.Argument(..., help="Book to ask for"),
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Note to the owner"),
) -> None:
    """Offer a swap on someone else's book."""
    users = UserRepository()
    sender = acting_user(users)
    swaps = SwapRepository()

    try:
        book = find_book(swaps.books, book_id, sender.uid)
        swap = swaps.create_swap_offer(SwapOfferCreate.for_book(book, sender, message))
    except HANDLED_ERRORS as e:
        fail(e)

    print_success(f"Offered a swap for '{swap.book_title}' to {swap.recipient_name}")
    print_info(f"Swap ID: {swap.id}")


def _settle(swap_id: str, status: SwapStatus) -> None:
    user_id = acting_user_id()
    try:
        swap = SwapRepository().update_swap_status(swap_id, status, actor_id=user_id)
    except HANDLED_ERRORS as e:
        fail(e)
    print_success(f"Swap for '{swap.book_title}' {swap.status.value}")


@swaps_app.command("accept")
def swaps_accept(swap_id: str = typer.Argument(..., help="Swap ID")) -> None:
    """Accept an offer on your book. Competing offers are rejected."""
    _settle(swap_id, SwapStatus.ACCEPTED)


@swaps_app.command("reject")
def swaps_reject(swap_id: str = typer.Argument(..., help="Swap ID")) -> None:
    """Reject an offer on your book."""
    _settle(swap_id, SwapStatus.REJECTED)


@swaps_app.command("cancel")
def swaps_cancel(swap_id: str = typer.Argument(..., help="Swap ID")) -> None:
    """Withdraw an offer you made."""
    _settle(swap_id, SwapStatus.CANCELLED)


@swaps_app.command("list")
def swaps_list(
    status: Optional[str] = typer.Option(None, "--status", "-s", help="Filter by status"),
    sent: bool = typer.Option(False, "--sent", help="Only offers you made"),
    received: bool = typer.Option(False, "--received", help="Only offers on your books"),
) -> None:
    """List your swaps, newest first."""
    user_id = acting_user_id()
    repo = SwapRepository()
    try:
        if sent and not received:
            swaps = repo.list_sent_swaps(user_id)
        elif received and not sent:
            swaps = repo.list_received_swaps(user_id)
        else:
            swaps = repo.list_user_swaps(user_id)
        if status:
            wanted = SwapStatus.parse(status)
            swaps = [s for s in swaps if s.status == wanted]
    except HANDLED_ERRORS as e:
        fail(e)

    if not swaps:
        console.print("[dim]No swaps found.[/dim]")
        return

    console.print(format_swap_table(swaps, user_id, title="My Swaps"))


@swaps_app.command("stats")
def swaps_stats() -> None:
    """Show your swap counts."""
    user_id = acting_user_id()
    try:
        stats = SwapRepository().get_user_swap_stats(user_id)
    except HANDLED_ERRORS as e:
        fail(e)

    table = Table(title="Swap Statistics", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    for status in SwapStatus:
        table.add_row(status.display, str(getattr(stats, status.value)))
    table.add_row("Sent", str(stats.sent))
    table.add_row("Received", str(stats.received))
    table.add_row("Total", str(stats.total))
    console.print(table)


# ============================================================================
# Chat Commands
# ============================================================================


@chats_app.command("open")
def chats_open(book_id: str = typer.Argument(..., help="Book to ask the owner about")) -> None:
    """Open (or reuse) a chat with a book's owner."""
    users = UserRepository()
    me = acting_user(users)
    try:
        book = find_book(BookRepository(), book_id, me.uid)
        chat = ChatRepository().get_or_create_chat_for_book(me, book)
    except HANDLED_ERRORS as e:
        fail(e)

    print_success(f"Chat with {chat.other_participant_name(me.uid)}")
    print_info(f"Chat ID: {chat.id}")


@chats_app.command("send")
def chats_send(
    chat_id: str = typer.Argument(..., help="Chat ID"),
    text: str = typer.Argument(..., help="Message text"),
) -> None:
    """Send a message."""
    users = UserRepository()
    me = acting_user(users)
    try:
        ChatRepository().send_message(chat_id, me.uid, me.display_name, text)
    except HANDLED_ERRORS as e:
        fail(e)
    print_success("Message sent")


@chats_app.command("list")
def chats_list() -> None:
    """List your chats, most recent first."""
    user_id = acting_user_id()
    try:
        chats = ChatRepository().list_user_chats(user_id)
    except HANDLED_ERRORS as e:
        fail(e)

    if not chats:
        console.print("[dim]No chats yet.[/dim]")
        return

    table = Table(title="Chats", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("With", style="cyan")
    table.add_column("Book", max_width=30)
    table.add_column("Last Message", max_width=40)
    table.add_column("Unread", justify="right")

    total_unread = 0
    for chat in chats:
        unread = chat.unread_count(user_id)
        total_unread += unread
        table.add_row(
            chat.id,
            chat.other_participant_name(user_id),
            chat.book_title or "-",
            chat.last_message_text or "[dim]No messages[/dim]",
            f"[bold]{unread}[/bold]" if unread else "-",
        )

    console.print(table)
    if total_unread:
        print_info(f"{total_unread} unread message(s)")


@chats_app.command("messages")
def chats_messages(
    chat_id: str = typer.Argument(..., help="Chat ID"),
    mark_read: bool = typer.Option(True, "--mark-read/--no-mark-read", help="Mark as read"),
) -> None:
    """Show a chat's messages, oldest first."""
    user_id = acting_user_id()
    repo = ChatRepository()
    try:
        chat = repo.get_chat(chat_id)
        if chat is None or not chat.has_participant(user_id):
            print_error(f"Chat not found: {chat_id}")
            raise typer.Exit(1)
        messages = repo.list_messages(chat_id)
        if mark_read:
            repo.mark_messages_as_read(chat_id, user_id)
    except HANDLED_ERRORS as e:
        fail(e)

    if not messages:
        console.print("[dim]No messages yet.[/dim]")
        return

    for message in messages:
        style = "green" if message.sender_id == user_id else "cyan"
        stamp = message.timestamp.strftime("%Y-%m-%d %H:%M")
        console.print(f"[dim]{stamp}[/dim] [{style}]{message.sender_name}:[/] {message.text}")


@chats_app.command("read")
def chats_read(chat_id: str = typer.Argument(..., help="Chat ID")) -> None:
    """Mark a chat's messages as read."""
    user_id = acting_user_id()
    try:
        count = ChatRepository().mark_messages_as_read(chat_id, user_id)
    except HANDLED_ERRORS as e:
        fail(e)
    print_success(f"Marked {count} message(s) as read")


# ============================================================================
# User Commands
# ============================================================================


@users_app.command("show")
def users_show(uid: Optional[str] = typer.Argument(None, help="User ID (default: you)")) -> None:
    """Show a profile."""
    uid = uid or acting_user_id()
    try:
        profile = UserRepository().get_user(uid)
    except HANDLED_ERRORS as e:
        fail(e)

    if profile is None:
        print_error(f"User not found: {uid}")
        raise typer.Exit(1)

    table = Table(title="Profile", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Name", profile.display_name)
    table.add_row("Email", profile.email)
    table.add_row("Verified", "yes" if profile.email_verified else "no")
    table.add_row("Joined", profile.created_at.strftime("%Y-%m-%d"))
    if profile.last_login_at:
        table.add_row("Last Login", profile.last_login_at.strftime("%Y-%m-%d %H:%M"))
    for kind, enabled in sorted(profile.notification_settings.items()):
        table.add_row(f"Notify: {kind}", "on" if enabled else "off")
    console.print(table)


@users_app.command("rename")
def users_rename(name: str = typer.Argument(..., help="New display name")) -> None:
    """Change the display name on your BookSwap profile.

    Only the profile shown to other readers changes. The name on your
    sign-in account stays as it is.
    """
    user_id = acting_user_id()
    try:
        profile = UserRepository().update_user(user_id, UserUpdate(display_name=name))
    except HANDLED_ERRORS as e:
        fail(e)
    print_success(f"Display name set to {profile.display_name}")


@users_app.command("notify")
def users_notify(
    swaps: Optional[bool] = typer.Option(None, "--swaps/--no-swaps", help="Swap notifications"),
    chats: Optional[bool] = typer.Option(None, "--chats/--no-chats", help="Chat notifications"),
) -> None:
    """Switch notification kinds on or off."""
    user_id = acting_user_id()
    settings = {key: value for key, value in {"swaps": swaps, "chats": chats}.items() if value is not None}
    if not settings:
        print_warning("Nothing to change. Use --swaps/--no-swaps or --chats/--no-chats.")
        raise typer.Exit(1)

    try:
        UserRepository().update_notification_settings(user_id, settings)
    except HANDLED_ERRORS as e:
        fail(e)
    print_success("Notification settings updated")


# ============================================================================
# Auth Commands
# ============================================================================


@auth_app.command("signup")
def auth_signup(
    email: str = typer.Option(..., "--email", "-e", prompt=True),
    name: str = typer.Option(..., "--name", "-n", prompt="Display name"),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True, confirmation_prompt=True),
) -> None:
    """Create an account. A verification email is sent."""
    from .auth import AccountManager

    try:
        profile = AccountManager().sign_up(email, password, name)
    except HANDLED_ERRORS as e:
        fail(e)

    print_success(f"Account created for {profile.email}")
    print_info("Check your inbox for the verification email before signing in.")
    print_info(f"User ID: {profile.uid}")


@auth_app.command("signin")
def auth_signin(
    email: str = typer.Option(..., "--email", "-e", prompt=True),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True),
) -> None:
    """Sign in and show the user ID to act as."""
    from .auth import AccountManager

    try:
        profile = AccountManager().sign_in(email, password)
    except HANDLED_ERRORS as e:
        fail(e)

    print_success(f"Signed in as {profile.display_name}")
    print_info(f"export BOOKSWAP_USER_ID={profile.uid}")


@auth_app.command("reset-password")
def auth_reset_password(email: str = typer.Option(..., "--email", "-e", prompt=True)) -> None:
    """Send a password-reset email."""
    from .auth import AccountManager

    try:
        AccountManager().reset_password(email)
    except HANDLED_ERRORS as e:
        fail(e)
    print_success(f"Password reset email sent to {email.strip()}")


# ============================================================================
# Config / Version Commands
# ============================================================================


@app.command("config")
def show_config() -> None:
    """Show the active configuration and any problems with it."""
    config = get_config()

    table = Table(title="Configuration", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Project", config.project_id or "[dim]not set[/dim]")
    table.add_row(
        "Credentials",
        str(config.credentials_path) if config.credentials_path else "[dim]application default[/dim]",
    )
    table.add_row("Storage bucket", config.storage_bucket or "[dim]not set[/dim]")
    table.add_row("Auth API key", "set" if config.has_auth_config() else "[dim]not set[/dim]")
    table.add_row("Auth timeout", f"{config.auth_timeout}s")
    table.add_row("Require verified email", "yes" if config.require_verified_email else "no")
    table.add_row("User", _state["user_id"] or "[dim]not set[/dim]")
    table.add_row("Log level", config.log_level)
    console.print(table)

    errors = config.validate()
    for error in errors:
        print_warning(error)
    if errors:
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__

    console.print(f"bookswap version {__version__}")


# ============================================================================
# Main Entry Point
# ============================================================================


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
