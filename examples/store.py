# surreal-inline example: a small purchasing schema
#
# Declare entities and their inline migrations, then either run this file
# (uses the SURREAL_* environment variables) or point the CLI at it:
#
#   surreal-inline --models examples.store:registry order Model
#   surreal-inline --models examples.store:registry migrate Model

import asyncio
import logging
import os

from surreal_inline import (
    Abort,
    Change,
    ConnectionConfig,
    EntityRegistry,
    FieldDefinition,
    FieldType,
    HTTPConnection,
    IndexDefinition,
    SchemaInstaller,
    SurrealExecutor,
    TableSchema,
    ViewDefinition,
)
from surreal_inline.entity import Association
from surreal_inline.migrations.operations import AddField, CreateIndex, DataMigration

registry = EntityRegistry()

# Abstract root every table hangs from
model = registry.define("Model", abstract=True)

company = registry.define(
    "Company",
    parent=model,
    schema=TableSchema(
        fields=[FieldDefinition("name", FieldType.STRING)],
        indexes=[IndexDefinition("company_name", ["name"], unique=True)],
    ),
)

vendor = registry.define(
    "Vendor",
    parent=model,
    schema=TableSchema(
        fields=[
            FieldDefinition("name", FieldType.STRING),
            FieldDefinition("company", FieldType.RECORD.generic("company")),
            FieldDefinition("created_at", FieldType.DATETIME, default="time::now()"),
        ],
        indexes=[IndexDefinition("vendor_name", ["name"])],
    ),
    associations=[Association.many_to_one("company", "Company")],
)

purchase = registry.define(
    "Purchase",
    parent=model,
    schema=TableSchema(
        fields=[
            FieldDefinition("vendor", FieldType.RECORD.generic("vendor")),
            FieldDefinition("total", FieldType.DECIMAL),
        ]
    ),
    associations=[Association.many_to_one("vendor", "Vendor")],
)

purchase_totals = registry.define(
    "PurchaseTotals",
    parent=model,
    view=ViewDefinition("SELECT math::sum(total) AS total, vendor FROM purchase GROUP BY vendor"),
)

# The schemas above are the latest ones: on a fresh database these
# migrations are only recorded, on an older one they bring it up to date.
vendor.migration(
    "20110228_1115_add_timestamps",
    "Add timestamp fields",
    Change(
        [
            AddField("vendor", "created_at", FieldType.DATETIME, default="time::now()"),
            DataMigration(
                forwards_sql="UPDATE vendor SET created_at = time::now() WHERE created_at IS NONE;",
                description="Backfill creation times",
            ),
        ]
    ),
)

vendor.migration(
    "20110303_1751_index_name",
    "Add an index to the name field",
    Change([CreateIndex("vendor", "vendor_name", ["name"])]),
)


@model.hooks.connect("before_migration_run")
async def refuse_on_production(entity):
    if os.getenv("SURREAL_DATABASE") == "production" and not os.getenv("ALLOW_MIGRATIONS"):
        return Abort("Set ALLOW_MIGRATIONS to migrate the production database")
    return None


async def main() -> None:
    config = ConnectionConfig(
        url=os.getenv("SURREAL_URL", "http://localhost:8000"),
        user=os.getenv("SURREAL_USER", "root"),
        password=os.getenv("SURREAL_PASSWORD", "root"),
        namespace=os.getenv("SURREAL_NAMESPACE", "test"),
        database=os.getenv("SURREAL_DATABASE", "test"),
    )
    async with HTTPConnection.from_config(config) as connection:
        await connection.signin(config.user, config.password)
        plan = await SchemaInstaller(registry, SurrealExecutor(connection)).migrate(model)
        print(f"Applied: {plan.names if plan else 'nothing'}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
