"""
Content Gateway Entry Point

Run with: uvicorn content_gateway.main:app --port 8000
Or: python main.py
"""

from content_gateway.main import app

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("content_gateway.main:app", host="0.0.0.0", port=8000, reload=True)
