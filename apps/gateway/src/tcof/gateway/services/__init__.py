"""网关业务服务层"""
