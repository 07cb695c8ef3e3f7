"""
Interactive console for the FinVault access core.
Log in as a seeded identity, impersonate, edit the permission matrix and
read the compliance log.
"""

import shlex

from finvault.config import MAX_LOG_ROWS, SEED_DB_URI, setup_logging
from finvault.models import Capability, Role
from finvault.portal import Portal, create_portal
from finvault.reports import (
    audit_log_frame,
    identity_frame,
    permission_matrix_frame,
)
from finvault.seed import init_engine, load_identities
from finvault.session import Session

HELP = """Commands:
  whoami                      show the acting and presented identities
  users                       list identities visible to you
  impersonate <id>            act as a lower-ranked identity
  stop                        stop impersonating
  perms                       show the permission matrix
  set <ROLE> <CAP> on|off     change a matrix cell (super admin only)
  logs                        show the audit log (ADMIN_MODULES only)
  export <path>               write the audit log to CSV (needs DOWNLOAD_PDF)
  assets <family id>          show a family's assets
  docs <family id>            list a family's documents
  logout                      end the session
  quit                        exit"""


def build_portal() -> Portal:
    if SEED_DB_URI:
        engine = init_engine()
        print("[init] Loading identities from seed database...")
        return create_portal(identities=load_identities(engine))
    return create_portal()


def handle_command(portal: Portal, session: Session, line: str) -> bool:
    """Run one console command. Returns False when the session has ended."""
    parts = shlex.split(line)
    cmd, args = parts[0].lower(), parts[1:]
    user = session.current_user

    if cmd == "help":
        print(HELP)

    elif cmd == "whoami":
        print(f"Acting user:    {session.acting_user.name} ({session.acting_user.role.value})")
        if session.is_impersonating:
            print(f"Impersonating:  {user.name} ({user.role.value})")

    elif cmd == "users":
        visible = portal.engine.visible_identities(user)
        if not visible:
            print("(no visible identities)")
        else:
            print(identity_frame(visible).to_string(index=False))

    elif cmd == "impersonate" and len(args) == 1:
        target = portal.directory.find(args[0])
        if target is None:
            print(f"[error] Unknown identity '{args[0]}'")
        elif session.start_impersonation(target):
            print(f"[auth] Now acting as {target.name}")
        else:
            print("[DENIED] Unauthorized impersonation attempt. Security violation logged.")

    elif cmd == "stop":
        if session.stop_impersonation():
            print(f"[auth] Back to {session.acting_user.name}")
        else:
            print("Not impersonating.")

    elif cmd == "perms":
        print(permission_matrix_frame(portal.admin.permission_matrix(session)).to_string())

    elif cmd == "set" and len(args) == 3:
        try:
            role, cap = Role(args[0].upper()), Capability(args[1].upper())
        except ValueError as e:
            print(f"[error] {e}")
            return True
        value = args[2].lower() in {"on", "true", "1", "yes"}
        if portal.admin.set_permission(session, role, cap, value):
            print(f"{role.value}: {cap.value} successfully committed.")
        else:
            print("[DENIED] Only a super admin may edit the permission matrix.")

    elif cmd == "logs":
        entries = portal.admin.audit_log(session)
        if not entries and not portal.engine.can_view_audit_log(user):
            print("[DENIED] Compliance log requires ADMIN_MODULES.")
        else:
            print(audit_log_frame(entries[:MAX_LOG_ROWS]).to_string(index=False))

    elif cmd == "export" and len(args) == 1:
        count = portal.admin.export_audit_log(session, args[0])
        if count is None:
            print("[DENIED] Export requires ADMIN_MODULES and DOWNLOAD_PDF.")
        else:
            print(f"Wrote {count} audit entries to {args[0]}")

    elif cmd == "assets" and len(args) == 1:
        family_id = args[0]
        assets = portal.portfolios.assets(session, family_id)
        if not assets:
            print("(no assets)")
        for a in assets:
            print(f"  {a.type.value:<16} {a.value:>14,.2f}  member={a.member_id}")
        print(f"Net worth: {portal.portfolios.net_worth(session, family_id):,.2f}")

    elif cmd == "docs" and len(args) == 1:
        docs = portal.portfolios.documents(session, args[0])
        if not docs:
            print("(no documents)")
        for d in docs:
            print(f"  {d.category:<16} {d.file_name:<30} {d.file_size:>8}  {d.upload_date}")

    elif cmd == "logout":
        session.logout()
        print("Logged out.")
        return False

    else:
        print("Unknown command. Type 'help'.")

    return True


def main():
    print("=== FinVault Access Console ===\n")
    setup_logging()

    portal = build_portal()
    print(f"[init] {len(portal.directory)} identities loaded.")
    for u in portal.directory.list():
        print(f"  {u.id:<8} {u.name:<20} {u.role.label}")

    while True:
        # ── Login ────────────────────────────────────────────────────
        try:
            identity_id = input("\nLog in as identity id (or 'quit'): ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nExiting.")
            return

        if not identity_id:
            continue
        if identity_id.lower() in {"quit", "exit"}:
            print("Goodbye.")
            return

        session = portal.new_session()
        user = session.login(identity_id)
        if user is None:
            print(f"[ERROR] Login failed: unknown identity '{identity_id}'.")
            continue
        print(f"\n[auth] Logged in as: {user.name} (role={user.role.value})")

        # ── REPL ─────────────────────────────────────────────────────
        while True:
            try:
                line = input(f"\n{session.current_user.name}> ").strip()
            except (EOFError, KeyboardInterrupt):
                session.logout()
                print("\nExiting.")
                return

            if not line:
                continue
            if line.lower() in {"quit", "exit"}:
                session.logout()
                print("Goodbye.")
                return

            try:
                if not handle_command(portal, session, line):
                    break
            except ValueError as e:
                print("\n[ERROR] Command failed.")
                print("Details:", e)


if __name__ == "__main__":
    main()
