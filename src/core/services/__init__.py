"""Servicios del Core: clasificación, extracción de logs y el cliente de compilación."""
