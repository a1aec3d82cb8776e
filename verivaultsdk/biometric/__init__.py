# __   __           _ __   __             _  _
# \ \ / / ___  _ _ (_)\ \ / / __ _  _  _ | || |_
#  \ V / / -_)| '_|| | \ V / / _` || || || ||  _|
#   \_/  \___||_|  |_|  \_/  \__,_| \_,_||_| \__|
#
# VeriVault SDK
# Copyright 2025 VeriVault
#
