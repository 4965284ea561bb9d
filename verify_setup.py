"""
Setup verification script for the Whitepaper Studio backend.
Checks that dependencies are installed and the database and API keys work.
"""
import asyncio
import sys
import os
from typing import List, Tuple

# Color codes for terminal output
GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
BLUE = "\033[94m"
RESET = "\033[0m"


def print_status(message: str, status: bool):
    """Print colored status message."""
    symbol = f"{GREEN}✓{RESET}" if status else f"{RED}✗{RESET}"
    print(f"{symbol} {message}")


async def check_python_version() -> bool:
    """Check Python version is 3.11+."""
    version = sys.version_info
    if version.major == 3 and version.minor >= 11:
        print_status(f"Python version: {version.major}.{version.minor}.{version.micro}", True)
        return True
    else:
        print_status(f"Python version {version.major}.{version.minor} (requires 3.11+)", False)
        return False


async def check_dependencies() -> bool:
    """Check if required packages are installed."""
    required_packages = [
        "fastapi",
        "uvicorn",
        "pydantic_settings",
        "sqlalchemy",
        "asyncpg",
        "httpx",
        "reportlab",
        "docx",
        "pptx",
        "PIL",
    ]

    all_installed = True
    for package in required_packages:
        try:
            __import__(package)
            print_status(f"Package '{package}' installed", True)
        except ImportError:
            print_status(f"Package '{package}' missing", False)
            all_installed = False

    return all_installed


async def check_env_file() -> bool:
    """Check if .env file exists."""
    if os.path.exists(".env"):
        print_status(".env file exists", True)
        return True
    else:
        print_status(".env file missing (copy from .env.example)", False)
        return False


async def check_database() -> bool:
    """Check the configured DATABASE_URL accepts connections."""
    from app.database import AsyncSessionLocal, close_db, ping

    try:
        async with AsyncSessionLocal() as session:
            ok = await ping(session)
    finally:
        await close_db()

    if ok:
        print_status("Database connection successful", True)
    else:
        print_status("Database connection failed (see log above)", False)
        print(f"  {YELLOW}Check DATABASE_URL in .env{RESET}")
    return ok


async def check_openai() -> bool:
    """Check the OpenAI key by embedding a short string (required)."""
    from app.services.llm_client import OpenAIService

    service = OpenAIService()
    if not service.is_configured:
        print_status("OPENAI_API_KEY not set", False)
        return False
    try:
        vector = await service.get_embedding("whitepaper setup check")
        print_status(f"OpenAI reachable (embedding size {len(vector)})", True)
        return True
    except Exception as e:
        print_status(f"OpenAI request failed: {str(e)}", False)
        return False


async def check_pinecone() -> bool:
    """Run one Pinecone query (optional: grounding only)."""
    from app.services.llm_client import OpenAIService
    from app.services.vector_search import PineconeService

    store = PineconeService()
    if not store.is_configured:
        print_status("Pinecone not configured (whitepapers will not be grounded)", True)
        return True
    try:
        vector = await OpenAIService().get_embedding("setup check")
        matches = await store.query(vector, top_k=1)
        print_status(f"Pinecone query OK ({len(matches)} match)", True)
        return True
    except Exception as e:
        print_status(f"Pinecone query failed: {str(e)}", False)
        return False


async def check_gemini() -> bool:
    """Report whether Gemini is configured (optional: illustrations only)."""
    from app.services.image_generator import GeminiImageService

    configured = GeminiImageService().is_configured
    if configured:
        print_status("GOOGLE_AI_API_KEY set", True)
    else:
        print_status("GOOGLE_AI_API_KEY not set (no illustrations)", True)
        print(f"  {YELLOW}Image generation will be skipped{RESET}")
    return True


async def main():
    """Run all verification checks."""
    print(f"\n{BLUE}{'='*60}{RESET}")
    print(f"{BLUE}Whitepaper Studio Backend - Setup Verification{RESET}")
    print(f"{BLUE}{'='*60}{RESET}\n")

    checks: List[Tuple[str, callable]] = [
        ("Python Version", check_python_version),
        ("Dependencies", check_dependencies),
        ("Environment File", check_env_file),
        ("Database", check_database),
        ("OpenAI", check_openai),
        ("Pinecone", check_pinecone),
        ("Google Gemini", check_gemini),
    ]

    results = []

    for check_name, check_func in checks:
        print(f"\n{BLUE}Checking {check_name}...{RESET}")
        try:
            result = await check_func()
            results.append(result)
        except Exception as e:
            print_status(f"Error during check: {str(e)}", False)
            results.append(False)

    # Summary
    print(f"\n{BLUE}{'='*60}{RESET}")
    passed = sum(results)
    total = len(results)

    if passed == total:
        print(f"{GREEN}✓ All checks passed! ({passed}/{total}){RESET}")
        print(f"\n{GREEN}You're ready to run the backend:{RESET}")
        print(f"  uvicorn app.main:app --reload")
    else:
        print(f"{RED}✗ Some checks failed ({passed}/{total} passed){RESET}")
        print(f"\n{YELLOW}Please fix the issues above before running the backend.{RESET}")
        sys.exit(1)

    print(f"{BLUE}{'='*60}{RESET}\n")


if __name__ == "__main__":
    asyncio.run(main())
