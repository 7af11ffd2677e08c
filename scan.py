import asyncio

from syncctl import SyncController


async def main():
    """Scan for SYNC devices and print them."""
    print("Scanning for SYNC devices...")
    async with SyncController() as controller:
        devices = await controller.scan()
    print(f"\nFound {len(devices)} device(s):\n")
    for d in devices:
        print(f"{d.id}: {d.name}")


if __name__ == "__main__":
    asyncio.run(main())
