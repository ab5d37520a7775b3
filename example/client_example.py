import httpx

from agent402.schemas.https import PAYMENT_HEADER

SERVER = "http://localhost:8000/agent/execute"
user_pubkey = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"  # Replace with your wallet
payment_sig = "mock_devnet_signature"  # Replace with the signature of your payment transaction


async def main():
    body = {
        "prompt": f"Send 0.01 SOL to {user_pubkey}",
        "user_pubkey": user_pubkey,
        "network": "devnet",
    }
    async with httpx.AsyncClient(timeout=httpx.Timeout(30.0)) as client:
        response = await client.post(SERVER, json=body)
        if response.status_code == 402:
            quote = response.json()
            print(f"Payment required: {quote['amount']} lamports to {quote['address']}")
            response = await client.post(SERVER, json=body, headers={PAYMENT_HEADER: payment_sig})
        return response


if __name__ == "__main__":
    import asyncio
    response = asyncio.run(main())
    print("Response:", response.status_code, response.json())
