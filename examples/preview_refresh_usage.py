#!/usr/bin/env python3
"""Example usage of the RefreshOrchestrator in preview mode.

Requires SYSTEM_COLLECTIONURI, SYSTEM_TEAMPROJECT and SYSTEM_ACCESSTOKEN in
the environment plus an Azure login that DefaultAzureCredential can use.
Nothing is rotated or written.
"""

import logging

from splurge_connection_refresher import RefresherConfig, RefreshOrchestrator
from splurge_connection_refresher.clients.http import ServiceContext, azure_token_provider


def main():
    """Preview a refresh of every identity expiring within two weeks."""
    logging.basicConfig(level=logging.INFO)

    config = RefresherConfig.from_environment(name_pattern="^svc-", threshold_days=14)
    print(f"Organization: {config.organization_url}")
    print(f"Project: {config.project}")
    print()

    with ServiceContext(
        organization_url=config.organization_url,
        project=config.project,
        devops_token=config.token,
        token_provider=azure_token_provider(),
    ) as context:
        orchestrator = RefreshOrchestrator.from_context(context)

        # Discovery only, with owners
        for identity in orchestrator.discover(config.name_pattern, config.threshold_days, include_owners=True):
            owners = ", ".join(o.display_name for o in identity.owners or ())
            print(f"{identity.display_name}: expires {identity.soonest_expiry} (owners: {owners or 'none'})")
        print()

        # Full pipeline without writes
        summary = orchestrator.run(config.name_pattern, config.threshold_days, apply=False)
        for outcome in summary.identities:
            print(f"{outcome.display_name} -> {outcome.state.value}")
            for connection in outcome.connections:
                action = connection.action.value if connection.action else "-"
                print(f"  {connection.resource_name}: {connection.status.value} ({action} {connection.connection_name})")

    print()
    print(f"Previewed {len(summary.identities)} identities, {summary.skipped_count} connections would be skipped")


if __name__ == "__main__":
    main()
