import requests
from typing import Dict, Optional
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


# TMDB Service to interact with The Movie Database API
class TMDBService:
    BASE_URL = "https://api.themoviedb.org/3"
    TIMEOUT = 10

    def __init__(self, api_key: Optional[str]):
        self.api_key = api_key

    # Internal method to make GET requests to TMDB API
    def _make_request(self, endpoint: str, params: Dict = None) -> Dict:
        """
        Make HTTP request to TMDB API.

        Args:
            endpoint: API endpoint (e.g., "/movie/550")
            params: Query parameters

        Returns:
            JSON response from TMDB

        Raises:
            HTTPException: If API key is missing or request fails
        """
        if not self.api_key:
            raise HTTPException(status_code=500, detail="TMDB API key not configured")
        params = dict(params or {})
        params['api_key'] = self.api_key
        url = f"{self.BASE_URL}{endpoint}"

        try:
            response = requests.get(url, params=params, timeout=self.TIMEOUT)
            response.raise_for_status()
            logger.debug(f"TMDB API request successful: {endpoint}")
            return response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"TMDB API error for {endpoint}: {str(e)}")
            raise HTTPException(status_code=502, detail=f"TMDB API error: {str(e)}")

    def search_movies(self, query: str, page: int = 1) -> Dict:
        """Search movies by title, ranked by TMDB"""
        return self._make_request("/search/movie", {'query': query, 'page': page})

    def get_movie_details(self, tmdb_id: int) -> Dict:
        """Get descriptive fields for one movie"""
        return self._make_request(f"/movie/{tmdb_id}")
