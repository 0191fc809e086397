from __future__ import annotations

from django.core.management.base import BaseCommand

from identity.seed import DEMO_USERS, seed_demo


class Command(BaseCommand):
    help = "Crée les comptes, tags, secteurs et stories de démonstration (idempotent)."

    def add_arguments(self, parser) -> None:
        parser.add_argument(
            "--quiet-passwords",
            action="store_true",
            help="N'affiche pas les mots de passe des comptes de démonstration.",
        )

    def handle(self, *args, **options) -> None:
        summary = seed_demo()
        self.stdout.write(
            self.style.SUCCESS(
                "Démo prête : {users} comptes, {tags} tags, {verticals} secteurs, "
                "{stories} nouvelles stories.".format(**summary)
            )
        )
        if options["quiet_passwords"]:
            return
        for entry in DEMO_USERS:
            self.stdout.write(f"  {str(entry['role']):<5} {entry['email']} / {entry['password']}")
